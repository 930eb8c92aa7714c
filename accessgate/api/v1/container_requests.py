"""Container access request endpoints."""

from fastapi import APIRouter, Depends, status

from accessgate.api.deps import get_container_request_service, get_current_user
from accessgate.models.sql.user import User
from accessgate.schemas.outcome import AccessOutcome
from accessgate.schemas.requests import (
    ContainerRequestAnswer,
    ContainerRequestCreate,
    ContainerRequestCreated,
)
from accessgate.services.container_requests import ContainerRequestService

router = APIRouter()


@router.post(
    "/{container_id}",
    response_model=ContainerRequestCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Request a role on a container",
)
async def create_request(
    container_id: str,
    request_data: ContainerRequestCreate,
    current_user: User = Depends(get_current_user),
    requests: ContainerRequestService = Depends(get_container_request_service),
) -> ContainerRequestCreated:
    request_id = await requests.create(
        current_user, container_id, request_data.role, skip_email=request_data.skip_email
    )
    return ContainerRequestCreated(request_id=request_id)


@router.post(
    "/{request_id}/accept",
    response_model=AccessOutcome,
    summary="Accept an access request",
)
async def accept_request(
    request_id: str,
    answer: ContainerRequestAnswer = ContainerRequestAnswer(),
    current_user: User = Depends(get_current_user),
    requests: ContainerRequestService = Depends(get_container_request_service),
) -> AccessOutcome:
    return await requests.response(request_id, current_user, True, skip_email=answer.skip_email)


@router.post(
    "/{request_id}/reject",
    response_model=AccessOutcome,
    summary="Reject an access request",
)
async def reject_request(
    request_id: str,
    answer: ContainerRequestAnswer = ContainerRequestAnswer(),
    current_user: User = Depends(get_current_user),
    requests: ContainerRequestService = Depends(get_container_request_service),
) -> AccessOutcome:
    return await requests.response(request_id, current_user, False, skip_email=answer.skip_email)
