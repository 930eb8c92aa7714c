"""Container invitations and shareable invitation links.

A user may hold several pending offers for the same container: addressed
invitations from different owners and any number of link tokens. Accepting
any one of them resolves to the least limiting role on offer, and every
pending invitation for that (container, email) pair is cleared afterwards.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Optional
from uuid import UUID

from accessgate.config import settings
from accessgate.core.exceptions import (
    ConflictingRecordError,
    InvalidCredentialsError,
    MissingContainerError,
    NotificationError,
    RecordGoneError,
    RecordNotFoundError,
    UserRoleError,
    ValidationError,
)
from accessgate.core.identifiers import (
    container_invitation_id,
    invitation_token_id,
    normalize_email,
)
from accessgate.core.roles import (
    LINK_TOKEN_ROLES,
    Role,
    ensure_valid_role,
    is_more_limiting,
    least_limiting,
)
from accessgate.core.security import generate_invitation_token
from accessgate.models.nosql.activity import ActivityType
from accessgate.models.sql.container import Container
from accessgate.models.sql.invitation import ContainerInvitation, InvitationToken
from accessgate.models.sql.user import User
from accessgate.repositories.base import UnitOfWork
from accessgate.repositories.invitations import (
    ContainerInvitationRepository,
    InvitationTokenRepository,
)
from accessgate.repositories.users import UserRepository
from accessgate.schemas.outcome import AccessOutcome
from accessgate.services.access_control import AccessControlService
from accessgate.services.activity import ActivityTrackingService
from accessgate.services.invitations import invitation_expiry
from accessgate.services.notifications import NotificationSender
from accessgate.services.users import provision_user

logger = logging.getLogger(__name__)

TOKEN_WON_BY_INVITATION = "Invitation with a less limiting role was found and accepted."


@dataclass
class InvitedUser:
    email: str
    name: Optional[str] = None


def token_expiry() -> datetime:
    return datetime.now(UTC) + timedelta(days=settings.INVITATION_TOKEN_EXPIRY_DAYS)


def _best_invitation(invitations: list[ContainerInvitation]) -> ContainerInvitation:
    best_role = least_limiting(Role(inv.role) for inv in invitations)
    offers = [inv for inv in invitations if inv.role == best_role.value]
    # Prefer an offer not yet accepted when several grant the same role
    return next((inv for inv in offers if inv.accepted_at is None), offers[0])


def _ensure_link_role(role: Role | str) -> Role:
    role = ensure_valid_role(role)
    if role not in LINK_TOKEN_ROLES:
        raise ValidationError(f"Invitation links can not grant the {role.value} role", role)
    return role


class ContainerInvitationService:
    """Invite users to containers and reconcile the offers they accept."""

    def __init__(
        self,
        access: AccessControlService,
        container_invitations: ContainerInvitationRepository,
        invitation_tokens: InvitationTokenRepository,
        users: UserRepository,
        notifier: NotificationSender,
        activity: ActivityTrackingService,
        unit_of_work: UnitOfWork,
    ):
        self.access = access
        self.container_invitations = container_invitations
        self.invitation_tokens = invitation_tokens
        self.users = users
        self.notifier = notifier
        self.activity = activity
        self.unit_of_work = unit_of_work

    async def _get_owned_container(self, user: User, container_id: str) -> Container:
        container = await self.access.get_container(container_id)
        if not self.access.is_owner(container, user.id):
            raise UserRoleError(f"User {user.id} is not an owner of {container_id}", user.id)
        return container

    async def _get_user(self, user_id: UUID) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise InvalidCredentialsError("User could not be found", user_id)
        return user

    async def invite_to_container(
        self,
        inviting_user_id: UUID,
        invited_users: list[InvitedUser],
        container_id: str,
        role: Role | str,
        message: Optional[str] = None,
        skip_email: bool = False,
    ) -> list[tuple[str, str]]:
        """Offer ``role`` on a container to each invited user.

        Every invitee is validated before anything is written. Re-inviting
        the same person from the same owner refreshes the existing
        invitation with the new role, message and expiry.

        Returns ``(email, invitation_id)`` pairs.
        """
        inviting_user = await self._get_user(inviting_user_id)
        if not invited_users:
            raise ValidationError("No invited users given", invited_users)
        role = ensure_valid_role(role)

        unique: dict[str, InvitedUser] = {}
        for u in invited_users:
            email = normalize_email(u.email)
            unique.setdefault(email, InvitedUser(email, u.name))
        invitees = list(unique.values())
        if any(u.email == normalize_email(inviting_user.email) for u in invitees):
            raise ValidationError("User can not invite themselves", inviting_user.email)

        container = await self._get_owned_container(inviting_user, container_id)

        for invitee in invitees:
            existing_user = await self.users.get_by_email(invitee.email)
            if existing_user and self.access.is_container_user(container, existing_user.id):
                raise ConflictingRecordError(
                    "The invited user is already a member of the container", invitee.email
                )

        inviting_profile = await self.users.get_profile(inviting_user.id)
        if inviting_profile is None:
            raise ValidationError("Profile of the inviting user could not be found", inviting_user.id)

        expires_at = invitation_expiry()
        created: list[tuple[str, str]] = []
        for invitee in invitees:
            record_id = container_invitation_id(inviting_user.email, invitee.email, container_id)
            if await self.container_invitations.get_by_id(record_id) is not None:
                await self.container_invitations.patch(
                    record_id, role=role.value, message=message, container_title=container.title
                )
                await self.container_invitations.touch(record_id, expires_at)
            else:
                invited_user = await self.users.get_by_email(invitee.email)
                await self.container_invitations.create(
                    ContainerInvitation(
                        id=record_id,
                        inviting_user_id=inviting_user.id,
                        invited_user_email=invitee.email,
                        invited_user_name=invitee.name,
                        invited_user_id=invited_user.id if invited_user else None,
                        container_id=container_id,
                        container_title=container.title,
                        role=role.value,
                        message=message,
                        expires_at=expires_at,
                    )
                )
            created.append((invitee.email, record_id))

        await self.unit_of_work.commit()
        logger.info(
            f"User {inviting_user.id} invited {len(created)} user(s) to {container_id} as {role.value}"
        )
        for email, record_id in created:
            await self.activity.create_event(
                inviting_user.id,
                ActivityType.SEND_INVITATION,
                container_id,
                {"invitation_id": record_id, "role": role.value},
            )

        if not skip_email:
            try:
                for invitee, (email, record_id) in zip(invitees, created):
                    await self.notifier.send_container_invitation(
                        email, invitee.name, inviting_user, record_id, container, role
                    )
            except NotificationError as e:
                raise NotificationError(e.message, created) from e
        return created

    async def accept_container_invite(
        self, invitation_id: str, accepting_user: User, skip_email: bool = False
    ) -> AccessOutcome:
        """Accept an addressed invitation, granting the best pending offer."""
        invitation = await self.container_invitations.get_by_id(invitation_id)
        if invitation is None:
            raise RecordGoneError("Invitation does not exist", invitation_id)
        if normalize_email(accepting_user.email) != invitation.invited_user_email:
            raise InvalidCredentialsError(
                "Invitation was addressed to a different user", accepting_user.email
            )

        container_id = invitation.container_id
        container = await self.access.containers.get_by_id(container_id)
        if container is None:
            await self.container_invitations.remove(invitation_id)
            await self.unit_of_work.commit()
            logger.warning(f"Removed invitation {invitation_id} to missing container {container_id}")
            raise MissingContainerError(container_id)

        candidates = await self.container_invitations.get_invitations_for_user(
            container_id, invitation.invited_user_email
        )
        if invitation not in candidates:
            candidates.append(invitation)
        best = _best_invitation(candidates)
        best_role = Role(best.role)
        inviting_user = await self.users.get_by_id(best.inviting_user_id)

        grant = await self.access.reconcile_role(
            container,
            accepting_user,
            best_role,
            acting_user=inviting_user,
            accepted_at=best.accepted_at,
        )
        for candidate in candidates:
            await self.container_invitations.remove(candidate.id)
        await self.unit_of_work.commit()
        logger.info(
            f"User {accepting_user.id} accepted invitation {invitation_id} to {container_id}: {grant.message}"
        )

        await self.activity.create_event(
            accepting_user.id,
            ActivityType.ACCEPT_INVITATION,
            container_id,
            {"invitation_id": invitation_id, "role": best_role.value},
        )
        outcome = AccessOutcome(container_id=container_id, message=grant.message)
        if grant.added and not skip_email:
            await self._notify_added(container, best_role, accepting_user, inviting_user, outcome)
        return outcome

    async def accept_with_registration(
        self,
        invitation_id: str,
        name: Optional[str],
        password: Optional[str],
        skip_email: bool = False,
    ) -> AccessOutcome:
        """Create an account for the invited email and accept in one step."""
        invitation = await self.container_invitations.get_by_id(invitation_id)
        if invitation is None:
            raise RecordGoneError("Invitation does not exist", invitation_id)
        if await self.users.get_by_email(invitation.invited_user_email) is not None:
            raise InvalidCredentialsError(
                "An account already exists for this email, sign in to accept",
                invitation.invited_user_email,
            )

        user = await provision_user(self.users, invitation.invited_user_email, name, password)
        return await self.accept_container_invite(invitation_id, user, skip_email)

    async def accept_invitation_token(
        self, token: str, accepting_user_id: UUID, skip_email: bool = False
    ) -> AccessOutcome:
        """Accept a shareable link; a better addressed invitation wins over it."""
        accepting_user = await self._get_user(accepting_user_id)
        invitation_token = await self.invitation_tokens.get_one(token)
        if invitation_token is None:
            raise RecordGoneError("Invitation token does not exist", token)
        token_role = _ensure_link_role(invitation_token.permitted_role)

        container_id = invitation_token.container_id
        container = await self.access.containers.get_by_id(container_id)
        if container is None:
            raise MissingContainerError(container_id)

        pending = await self.container_invitations.get_invitations_for_user(
            container_id, accepting_user.email
        )
        offered_role = token_role
        inviting_user = None
        if pending:
            best = _best_invitation(pending)
            if is_more_limiting(token_role, Role(best.role)):
                offered_role = Role(best.role)
                inviting_user = await self.users.get_by_id(best.inviting_user_id)

        grant = await self.access.reconcile_role(
            container, accepting_user, offered_role, acting_user=inviting_user
        )
        for invitation in pending:
            await self.container_invitations.remove(invitation.id)
        await self.unit_of_work.commit()

        message = grant.message
        if inviting_user is not None and grant.changed:
            message = TOKEN_WON_BY_INVITATION
        logger.info(
            f"User {accepting_user.id} accepted link to {container_id} as {offered_role.value}: {message}"
        )

        await self.activity.create_event(
            accepting_user.id,
            ActivityType.ACCEPT_INVITATION_TOKEN,
            container_id,
            {"role": offered_role.value},
        )
        outcome = AccessOutcome(container_id=container_id, message=message)
        if grant.added and not skip_email:
            await self._notify_added(container, offered_role, accepting_user, inviting_user, outcome)
        return outcome

    async def reject_container_invite(self, invitation_id: str) -> None:
        invitation = await self.container_invitations.get_by_id(invitation_id)
        if invitation is None:
            raise ValidationError("Invitation does not exist", invitation_id)

        await self.container_invitations.remove(invitation_id)
        await self.unit_of_work.commit()
        logger.info(f"Invitation {invitation_id} rejected")
        await self.activity.create_event(
            invitation.invited_user_id or invitation.invited_user_email,
            ActivityType.REJECT_INVITATION,
            invitation.container_id,
            {"invitation_id": invitation_id},
        )

    async def uninvite(self, user_id: UUID, invitation_id: str) -> None:
        """Withdraw a pending invitation; owners only."""
        user = await self._get_user(user_id)
        invitation = await self.container_invitations.get_by_id(invitation_id)
        if invitation is None:
            raise RecordNotFoundError("Invitation does not exist", invitation_id)

        container = await self.access.containers.get_by_id(invitation.container_id)
        if container is not None:
            if not self.access.is_owner(container, user.id):
                raise UserRoleError(f"User {user.id} is not an owner", user.id)
        elif invitation.inviting_user_id != user.id:
            raise UserRoleError(f"User {user.id} did not send this invitation", user.id)

        await self.container_invitations.remove(invitation_id)
        await self.unit_of_work.commit()
        logger.info(f"Invitation {invitation_id} withdrawn by {user.id}")
        await self.activity.create_event(
            user.id, ActivityType.UNINVITE, invitation.container_id, {"invitation_id": invitation_id}
        )

    async def request_invitation_token(
        self, user_id: UUID, container_id: str, role: Role | str
    ) -> InvitationToken:
        """Return the link token for ``(container, role)``, creating it if needed."""
        return await self._touch_invitation_token(user_id, container_id, role, create=True)

    async def refresh_invitation_token(
        self, user_id: UUID, container_id: str, role: Role | str
    ) -> InvitationToken:
        """Extend the expiry of an existing link token."""
        return await self._touch_invitation_token(user_id, container_id, role, create=False)

    async def _touch_invitation_token(
        self, user_id: UUID, container_id: str, role: Role | str, create: bool
    ) -> InvitationToken:
        user = await self._get_user(user_id)
        await self._get_owned_container(user, container_id)
        role = _ensure_link_role(role)

        token_id = invitation_token_id(container_id, role)
        expires_at = token_expiry()
        invitation_token = await self.invitation_tokens.get_by_id(token_id)
        if invitation_token is not None:
            await self.invitation_tokens.touch(token_id, expires_at)
        elif create:
            invitation_token = await self.invitation_tokens.create(
                InvitationToken(
                    id=token_id,
                    token=generate_invitation_token(),
                    container_id=container_id,
                    permitted_role=role.value,
                    expires_at=expires_at,
                )
            )
            logger.info(f"Created {role.value} invitation link for {container_id}")
        else:
            raise RecordNotFoundError("Invitation token does not exist", token_id)

        await self.unit_of_work.commit()
        return invitation_token

    async def update_invited_user_id(self, user_id: UUID, email: str) -> int:
        """Attach a newly registered user to invitations addressed to their email."""
        updated = 0
        for invitation in await self.container_invitations.get_all_by_email(email):
            if invitation.invited_user_id != user_id:
                await self.container_invitations.patch(invitation.id, invited_user_id=user_id)
                updated += 1
        await self.unit_of_work.commit()
        return updated

    async def _notify_added(
        self,
        container: Container,
        role: Role,
        added_user: User,
        adding_user: Optional[User],
        outcome: AccessOutcome,
    ) -> None:
        try:
            await self.access.notify_added_user(container, role, added_user, adding_user)
        except NotificationError as e:
            raise NotificationError(e.message, outcome) from e
