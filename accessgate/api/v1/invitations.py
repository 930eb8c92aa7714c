"""Invitation and invitation link endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, status

from accessgate.api.deps import (
    get_container_invitation_service,
    get_current_user,
    get_invitation_service,
    get_optional_user,
)
from accessgate.core.roles import Role
from accessgate.models.sql.user import User
from accessgate.schemas.invitations import (
    ContainerInvitationAccept,
    ContainerInviteRequest,
    InvitationAccept,
    InvitationCreated,
    InvitationReject,
    InvitationTokenAccept,
    InvitationTokenResponse,
    InviteRequest,
    InviteResponse,
)
from accessgate.schemas.outcome import AccessOutcome
from accessgate.services.container_invitations import ContainerInvitationService, InvitedUser
from accessgate.services.invitations import InvitationService

router = APIRouter()


def _invite_response(created: list[tuple[str, str]]) -> InviteResponse:
    return InviteResponse(
        invitations=[InvitationCreated(email=email, invitation_id=inv_id) for email, inv_id in created]
    )


@router.post(
    "/invite",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite collaborators by email",
)
async def invite(
    invite_data: InviteRequest,
    current_user: User = Depends(get_current_user),
    invitations: InvitationService = Depends(get_invitation_service),
) -> InviteResponse:
    created = await invitations.invite(
        current_user.id,
        [str(email) for email in invite_data.invited_emails],
        invite_data.message,
        skip_email=invite_data.skip_email,
    )
    return _invite_response(created)


@router.post("/accept", response_model=AccessOutcome, summary="Accept a personal invitation")
async def accept_invitation(
    accept_data: InvitationAccept,
    invitations: InvitationService = Depends(get_invitation_service),
) -> AccessOutcome:
    """Accept an invitation; a new account is created when none exists for the email."""
    return await invitations.accept(
        accept_data.invitation_id, accept_data.name, accept_data.password
    )


@router.post(
    "/reject",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reject a personal invitation",
)
async def reject_invitation(
    reject_data: InvitationReject,
    invitations: InvitationService = Depends(get_invitation_service),
) -> None:
    await invitations.reject(reject_data.invitation_id)


@router.post(
    "/container/accept",
    response_model=AccessOutcome,
    summary="Accept a container invitation",
)
async def accept_container_invitation(
    accept_data: ContainerInvitationAccept,
    current_user: Optional[User] = Depends(get_optional_user),
    container_invitations: ContainerInvitationService = Depends(get_container_invitation_service),
) -> AccessOutcome:
    """Accept as the signed in user, or register the invited email and accept."""
    if current_user is None:
        return await container_invitations.accept_with_registration(
            accept_data.invitation_id,
            accept_data.name,
            accept_data.password,
            skip_email=accept_data.skip_email,
        )
    return await container_invitations.accept_container_invite(
        accept_data.invitation_id, current_user, skip_email=accept_data.skip_email
    )


@router.post(
    "/container/reject",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reject a container invitation",
)
async def reject_container_invitation(
    reject_data: InvitationReject,
    container_invitations: ContainerInvitationService = Depends(get_container_invitation_service),
) -> None:
    await container_invitations.reject_container_invite(reject_data.invitation_id)


@router.post(
    "/tokens/accept",
    response_model=AccessOutcome,
    summary="Accept an invitation link",
)
async def accept_invitation_token(
    accept_data: InvitationTokenAccept,
    current_user: User = Depends(get_current_user),
    container_invitations: ContainerInvitationService = Depends(get_container_invitation_service),
) -> AccessOutcome:
    return await container_invitations.accept_invitation_token(
        accept_data.token, current_user.id, skip_email=accept_data.skip_email
    )


@router.post(
    "/{container_id}/invite",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite users to a container",
)
async def invite_to_container(
    container_id: str,
    invite_data: ContainerInviteRequest,
    current_user: User = Depends(get_current_user),
    container_invitations: ContainerInvitationService = Depends(get_container_invitation_service),
) -> InviteResponse:
    created = await container_invitations.invite_to_container(
        current_user.id,
        [InvitedUser(str(u.email), u.name) for u in invite_data.invited_users],
        container_id,
        invite_data.role,
        invite_data.message,
        skip_email=invite_data.skip_email,
    )
    return _invite_response(created)


@router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Withdraw a container invitation",
)
async def uninvite(
    invitation_id: str,
    current_user: User = Depends(get_current_user),
    container_invitations: ContainerInvitationService = Depends(get_container_invitation_service),
) -> None:
    await container_invitations.uninvite(current_user.id, invitation_id)


@router.get(
    "/{container_id}/tokens/{role}",
    response_model=InvitationTokenResponse,
    summary="Get or create an invitation link",
)
async def request_invitation_token(
    container_id: str,
    role: Role,
    current_user: User = Depends(get_current_user),
    container_invitations: ContainerInvitationService = Depends(get_container_invitation_service),
) -> InvitationTokenResponse:
    invitation_token = await container_invitations.request_invitation_token(
        current_user.id, container_id, role
    )
    return InvitationTokenResponse.model_validate(invitation_token)


@router.post(
    "/{container_id}/tokens/{role}",
    response_model=InvitationTokenResponse,
    summary="Extend an invitation link",
)
async def refresh_invitation_token(
    container_id: str,
    role: Role,
    current_user: User = Depends(get_current_user),
    container_invitations: ContainerInvitationService = Depends(get_container_invitation_service),
) -> InvitationTokenResponse:
    invitation_token = await container_invitations.refresh_invitation_token(
        current_user.id, container_id, role
    )
    return InvitationTokenResponse.model_validate(invitation_token)
