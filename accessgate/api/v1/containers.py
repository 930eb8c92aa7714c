"""Container endpoints."""

from fastapi import APIRouter, Depends, status

from accessgate.api.deps import get_access_control_service, get_current_user
from accessgate.core.exceptions import UserRoleError
from accessgate.core.identifiers import ContainerType
from accessgate.models.sql.user import User
from accessgate.schemas.containers import (
    AddUserRequest,
    AddUserResponse,
    ContainerCreate,
    ContainerResponse,
    ManageRoleRequest,
    UserRoleResponse,
)
from accessgate.services.access_control import AccessControlService

router = APIRouter()


@router.post(
    "/{container_type}",
    response_model=ContainerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a container",
)
async def create_container(
    container_type: ContainerType,
    container_data: ContainerCreate,
    current_user: User = Depends(get_current_user),
    access: AccessControlService = Depends(get_access_control_service),
) -> ContainerResponse:
    """Create a container owned by the current user."""
    container = await access.create_container(
        current_user, container_type, container_data.id, container_data.title
    )
    return ContainerResponse.model_validate(container)


@router.delete(
    "/{container_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a container",
)
async def delete_container(
    container_id: str,
    current_user: User = Depends(get_current_user),
    access: AccessControlService = Depends(get_access_control_service),
) -> None:
    await access.delete_container(container_id, current_user)


@router.get(
    "/{container_id}/role",
    response_model=UserRoleResponse,
    summary="Get the current user's role",
)
async def get_user_role(
    container_id: str,
    current_user: User = Depends(get_current_user),
    access: AccessControlService = Depends(get_access_control_service),
) -> UserRoleResponse:
    container = await access.get_container(container_id)
    return UserRoleResponse(
        container_id=container.id, role=access.get_user_role(container, current_user.id)
    )


@router.post(
    "/{container_id}/roles",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Manage a user's role",
)
async def manage_user_role(
    container_id: str,
    role_data: ManageRoleRequest,
    current_user: User = Depends(get_current_user),
    access: AccessControlService = Depends(get_access_control_service),
) -> None:
    """Change, revoke or grant public access; owners or server callers only."""
    await access.manage_user_role(
        current_user,
        container_id,
        managed_user_id=role_data.managed_user_id,
        managed_connect_id=role_data.managed_connect_id,
        new_role=role_data.role,
        secret=role_data.secret,
    )


@router.post(
    "/{container_id}/users",
    response_model=AddUserResponse,
    summary="Add a user to a container",
)
async def add_container_user(
    container_id: str,
    add_data: AddUserRequest,
    current_user: User = Depends(get_current_user),
    access: AccessControlService = Depends(get_access_control_service),
) -> AddUserResponse:
    container = await access.get_container(container_id)
    if not access.is_owner(container, current_user.id):
        raise UserRoleError(f"User {current_user.id} is not an owner.", current_user.id)

    added = await access.add_container_user(
        container_id,
        add_data.role,
        add_data.user_id,
        adding_user=current_user,
        skip_email=add_data.skip_email,
    )
    return AddUserResponse(added=added)
