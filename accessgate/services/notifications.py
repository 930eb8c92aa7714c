"""Outgoing notifications about invitations, requests and new collaborators.

Delivery happens in the Celery worker; this module only queues the email.
A failure to queue raises ``NotificationError`` so callers can report it
after their access change has been committed.
"""

import logging
from typing import Any, Protocol

from kombu.exceptions import OperationalError

from accessgate.config import settings
from accessgate.core.exceptions import NotificationError
from accessgate.core.roles import Role
from accessgate.models.sql.container import Container
from accessgate.models.sql.user import User

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    async def send_invitation(
        self, invited_email: str, inviting_user: User, invitation_id: str
    ) -> None:
        ...

    async def send_container_invitation(
        self,
        invited_email: str,
        invited_name: str | None,
        inviting_user: User,
        invitation_id: str,
        container: Container,
        role: Role,
    ) -> None:
        ...

    async def send_container_invitation_acceptance(
        self, added_user: User, adding_user: User | None, container: Container, role: Role
    ) -> None:
        ...

    async def send_owner_notification_of_collaborator(
        self,
        owner: User,
        added_user: User,
        adding_user: User | None,
        container: Container,
        role: Role,
    ) -> None:
        ...

    async def send_container_request(
        self, owner: User, requesting_user: User, container: Container, role: Role
    ) -> None:
        ...

    async def send_request_response(
        self,
        requesting_user: User,
        acting_user: User,
        container: Container,
        role: Role,
        accepted: bool,
    ) -> None:
        ...


def _display(user: User | None) -> str:
    if user is None:
        return "A collaborator"
    return user.name or user.email


def _container_context(container: Container) -> dict[str, Any]:
    return {
        "container_id": container.id,
        "container_type": container.container_type,
        "container_title": container.title or "Untitled",
        "container_url": f"{settings.APP_BASE_URL}/{container.container_type}s/{container.id}",
    }


class CeleryNotificationSender:
    """Queues notification emails on the Celery broker."""

    def _enqueue(self, template: str, recipient: str, context: dict[str, Any]) -> None:
        from accessgate.workers.tasks import send_email

        try:
            send_email.delay(template, recipient, context)
        except OperationalError as e:
            logger.error(f"Failed to queue '{template}' email to {recipient}: {e}")
            raise NotificationError(
                f"Could not send the '{template}' notification to {recipient}"
            ) from e

    async def send_invitation(
        self, invited_email: str, inviting_user: User, invitation_id: str
    ) -> None:
        self._enqueue(
            "invitation",
            invited_email,
            {
                "inviting_user": _display(inviting_user),
                "accept_url": f"{settings.APP_BASE_URL}/invitation/accept/{invitation_id}",
            },
        )

    async def send_container_invitation(
        self,
        invited_email: str,
        invited_name: str | None,
        inviting_user: User,
        invitation_id: str,
        container: Container,
        role: Role,
    ) -> None:
        self._enqueue(
            "container_invitation",
            invited_email,
            {
                **_container_context(container),
                "invited_name": invited_name or invited_email,
                "inviting_user": _display(inviting_user),
                "role": Role(role).value,
                "accept_url": f"{settings.APP_BASE_URL}/invitation/accept/{invitation_id}",
            },
        )

    async def send_container_invitation_acceptance(
        self, added_user: User, adding_user: User | None, container: Container, role: Role
    ) -> None:
        self._enqueue(
            "container_invitation_acceptance",
            added_user.email,
            {
                **_container_context(container),
                "adding_user": _display(adding_user),
                "role": Role(role).value,
            },
        )

    async def send_owner_notification_of_collaborator(
        self,
        owner: User,
        added_user: User,
        adding_user: User | None,
        container: Container,
        role: Role,
    ) -> None:
        self._enqueue(
            "owner_collaborator_added",
            owner.email,
            {
                **_container_context(container),
                "added_user": _display(added_user),
                "adding_user": _display(adding_user),
                "role": Role(role).value,
            },
        )

    async def send_container_request(
        self, owner: User, requesting_user: User, container: Container, role: Role
    ) -> None:
        self._enqueue(
            "container_request",
            owner.email,
            {
                **_container_context(container),
                "requesting_user": _display(requesting_user),
                "role": Role(role).value,
            },
        )

    async def send_request_response(
        self,
        requesting_user: User,
        acting_user: User,
        container: Container,
        role: Role,
        accepted: bool,
    ) -> None:
        self._enqueue(
            "container_request_response",
            requesting_user.email,
            {
                **_container_context(container),
                "acting_user": _display(acting_user),
                "role": Role(role).value,
                "accepted": accepted,
            },
        )
