"""Personal collaboration invitations."""

import logging
from datetime import UTC, datetime, timedelta
from typing import Optional
from uuid import UUID

from accessgate.config import settings
from accessgate.core.exceptions import (
    InvalidCredentialsError,
    NotificationError,
    RecordGoneError,
    ValidationError,
)
from accessgate.core.identifiers import invitation_id, normalize_email
from accessgate.models.nosql.activity import ActivityType
from accessgate.models.sql.invitation import Invitation
from accessgate.repositories.base import UnitOfWork
from accessgate.repositories.invitations import InvitationRepository
from accessgate.repositories.users import CollaborationRepository, UserRepository
from accessgate.schemas.outcome import AccessOutcome
from accessgate.services.activity import ActivityTrackingService
from accessgate.services.notifications import NotificationSender
from accessgate.services.users import provision_user

logger = logging.getLogger(__name__)


def invitation_expiry() -> datetime:
    return datetime.now(UTC) + timedelta(days=settings.INVITATION_EXPIRY_DAYS)


class InvitationService:
    """Invite people by email to collaborate outside any container."""

    def __init__(
        self,
        invitations: InvitationRepository,
        users: UserRepository,
        collaborations: CollaborationRepository,
        notifier: NotificationSender,
        activity: ActivityTrackingService,
        unit_of_work: UnitOfWork,
    ):
        self.invitations = invitations
        self.users = users
        self.collaborations = collaborations
        self.notifier = notifier
        self.activity = activity
        self.unit_of_work = unit_of_work

    async def invite(
        self,
        inviting_user_id: UUID,
        invited_emails: list[str],
        message: Optional[str] = None,
        skip_email: bool = False,
    ) -> list[tuple[str, str]]:
        """Create or refresh one invitation per email.

        Returns ``(email, invitation_id)`` pairs.
        """
        inviting_user = await self.users.get_by_id(inviting_user_id)
        if inviting_user is None:
            raise InvalidCredentialsError("Inviting user could not be found", inviting_user_id)
        if not invited_emails:
            raise ValidationError("No invited users given", invited_emails)

        emails = list(dict.fromkeys(normalize_email(email) for email in invited_emails))
        if normalize_email(inviting_user.email) in emails:
            raise ValidationError("User can not invite themselves", inviting_user.email)

        created: list[tuple[str, str]] = []
        expires_at = invitation_expiry()
        for email in emails:
            record_id = invitation_id(inviting_user.email, email)
            existing = await self.invitations.get_by_id(record_id)
            if existing is not None:
                await self.invitations.patch(record_id, message=message, expires_at=expires_at)
            else:
                invited_user = await self.users.get_by_email(email)
                await self.invitations.create(
                    Invitation(
                        id=record_id,
                        inviting_user_id=inviting_user.id,
                        invited_user_email=email,
                        invited_user_id=invited_user.id if invited_user else None,
                        message=message,
                        expires_at=expires_at,
                    )
                )
            created.append((email, record_id))

        await self.unit_of_work.commit()
        logger.info(f"User {inviting_user.id} invited {len(created)} collaborator(s)")

        for email, record_id in created:
            await self.activity.create_event(
                inviting_user.id, ActivityType.SEND_INVITATION, payload={"invitation_id": record_id}
            )

        if not skip_email:
            try:
                for email, record_id in created:
                    await self.notifier.send_invitation(email, inviting_user, record_id)
            except NotificationError as e:
                raise NotificationError(e.message, created) from e
        return created

    async def accept(
        self,
        invitation_id: str,
        name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> AccessOutcome:
        invitation = await self.invitations.get_by_id(invitation_id)
        if invitation is None:
            raise RecordGoneError("Invitation does not exist", invitation_id)

        invited_user = await self.users.get_by_email(invitation.invited_user_email)
        if invited_user is None:
            invited_user = await provision_user(
                self.users, invitation.invited_user_email, name, password
            )

        await self.collaborations.create(invitation.inviting_user_id, invited_user.id)
        await self.invitations.remove(invitation_id)
        await self.unit_of_work.commit()
        logger.info(f"Invitation {invitation_id} accepted by {invited_user.id}")

        await self.activity.create_event(
            invited_user.id, ActivityType.ACCEPT_INVITATION, payload={"invitation_id": invitation_id}
        )
        return AccessOutcome(message="Invitation accepted")

    async def reject(self, invitation_id: str) -> None:
        invitation = await self.invitations.get_by_id(invitation_id)
        if invitation is None:
            raise ValidationError("Invitation does not exist", invitation_id)

        await self.invitations.remove(invitation_id)
        await self.unit_of_work.commit()
        logger.info(f"Invitation {invitation_id} rejected")

    async def update_invited_user_id(self, user_id: UUID, email: str) -> int:
        """Attach a newly registered user to invitations addressed to their email."""
        updated = 0
        for invitation in await self.invitations.get_all_by_email(email):
            if invitation.invited_user_id != user_id:
                await self.invitations.patch(invitation.id, invited_user_id=user_id)
                updated += 1
        await self.unit_of_work.commit()
        return updated
