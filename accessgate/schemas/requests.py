"""Container request schemas."""

from pydantic import BaseModel

from accessgate.core.roles import Role


class ContainerRequestCreate(BaseModel):
    role: Role
    skip_email: bool = False


class ContainerRequestCreated(BaseModel):
    request_id: str


class ContainerRequestAnswer(BaseModel):
    skip_email: bool = False
