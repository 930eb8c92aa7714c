"""Invitation schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from accessgate.core.roles import Role


class InviteRequest(BaseModel):
    """Schema for personal collaboration invites."""

    invited_emails: list[EmailStr] = Field(..., min_length=1)
    message: str | None = Field(None, max_length=2000)
    skip_email: bool = False


class InvitedUserSchema(BaseModel):
    email: EmailStr
    name: str | None = Field(None, max_length=255)


class ContainerInviteRequest(BaseModel):
    """Schema for inviting users to a container."""

    invited_users: list[InvitedUserSchema] = Field(..., min_length=1)
    role: Role = Role.VIEWER
    message: str | None = Field(None, max_length=2000)
    skip_email: bool = False


class InvitationCreated(BaseModel):
    email: str
    invitation_id: str


class InviteResponse(BaseModel):
    invitations: list[InvitationCreated]


class InvitationAccept(BaseModel):
    """Accept a personal invitation; name and password provision a new account."""

    invitation_id: str
    name: str | None = Field(None, max_length=255)
    password: str | None = Field(None, max_length=100)


class ContainerInvitationAccept(BaseModel):
    """Accept a container invitation.

    Without a bearer token the invited email gets a new account created from
    ``name`` and ``password``.
    """

    invitation_id: str
    name: str | None = Field(None, max_length=255)
    password: str | None = Field(None, max_length=100)
    skip_email: bool = False


class InvitationReject(BaseModel):
    invitation_id: str


class InvitationTokenAccept(BaseModel):
    token: str
    skip_email: bool = False


class InvitationTokenResponse(BaseModel):
    """Schema for shareable invitation link response."""

    token: str
    container_id: str
    permitted_role: Role
    expires_at: datetime

    class Config:
        from_attributes = True
