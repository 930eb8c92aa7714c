"""Container schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from accessgate.core.roles import Role


class ContainerCreate(BaseModel):
    """Schema for creating a container."""

    id: str | None = Field(None, max_length=255)
    title: str | None = Field(None, max_length=255)


class ContainerMemberResponse(BaseModel):
    user_id: UUID
    role: Role

    class Config:
        from_attributes = True


class ContainerResponse(BaseModel):
    """Schema for container response."""

    id: str
    container_type: str
    title: str | None = None
    is_public: bool
    members: list[ContainerMemberResponse] = []

    class Config:
        from_attributes = True


class UserRoleResponse(BaseModel):
    container_id: str
    role: Role | None = None


class ManageRoleRequest(BaseModel):
    """Change another user's role; ``role`` null revokes access.

    ``managed_user_id`` may be ``"*"`` to toggle public read access.
    """

    managed_user_id: str | None = None
    managed_connect_id: str | None = None
    role: Role | None = None
    secret: str | None = None


class AddUserRequest(BaseModel):
    user_id: UUID
    role: Role
    skip_email: bool = False


class AddUserResponse(BaseModel):
    added: bool
