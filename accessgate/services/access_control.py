"""Access control over container membership.

All role mutations go through ``apply_role``, which owns the last-owner
invariant. Public methods commit their own writes; ``apply_role`` and
``reconcile_role`` leave committing to the calling service so that a caller
can combine a membership change with other writes before committing.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from accessgate.core.exceptions import (
    ConflictingRecordError,
    InvariantViolationError,
    RecordNotFoundError,
    UserRoleError,
    ValidationError,
)
from accessgate.core.identifiers import (
    PUBLIC_USER_ID,
    ContainerType,
    container_type,
    new_container_id,
)
from accessgate.core.roles import Role, ensure_valid_role, is_more_limiting
from accessgate.core.security import verify_server_secret
from accessgate.models.nosql.activity import ActivityType
from accessgate.models.sql.container import Container
from accessgate.models.sql.user import User
from accessgate.repositories.base import UnitOfWork
from accessgate.repositories.containers import ContainerRepository
from accessgate.repositories.invitations import ContainerInvitationRepository
from accessgate.repositories.users import UserRepository
from accessgate.services.activity import ActivityTrackingService
from accessgate.services.notifications import NotificationSender

logger = logging.getLogger(__name__)

CONTAINER_NOUNS = {
    ContainerType.PROJECT.value: "project",
    ContainerType.LIBRARY.value: "library",
    ContainerType.LIBRARY_COLLECTION.value: "library collection",
}


@dataclass
class RoleGrant:
    """What reconciling an offered role against the held role did."""

    message: str
    previous_role: Optional[Role]
    added: bool = False
    updated: bool = False

    @property
    def changed(self) -> bool:
        return self.added or self.updated


def _parse_user_id(user_id: UUID | str) -> UUID:
    if isinstance(user_id, UUID):
        return user_id
    try:
        return UUID(str(user_id))
    except ValueError:
        raise ValidationError("Invalid user id", user_id)


class AccessControlService:
    """Reads and changes who holds which role on a container."""

    def __init__(
        self,
        containers: ContainerRepository,
        users: UserRepository,
        container_invitations: ContainerInvitationRepository,
        notifier: NotificationSender,
        activity: ActivityTrackingService,
        unit_of_work: UnitOfWork,
    ):
        self.containers = containers
        self.users = users
        self.container_invitations = container_invitations
        self.notifier = notifier
        self.activity = activity
        self.unit_of_work = unit_of_work

    async def get_container(self, container_id: str) -> Container:
        container_type(container_id)
        container = await self.containers.get_by_id(container_id)
        if container is None:
            raise RecordNotFoundError(f"Container with id {container_id} was not found")
        return container

    async def create_container(
        self,
        user: User,
        ctype: ContainerType,
        container_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Container:
        """Create a container whose sole owner is the creating user."""
        container_id = container_id or new_container_id(ctype)
        if container_type(container_id) != ctype:
            raise ValidationError(
                f"Container id does not match type '{ctype.value}'", container_id
            )
        if await self.containers.get_by_id(container_id) is not None:
            raise ConflictingRecordError("Container with the same id exists", container_id)

        container = await self.containers.create(container_id, ctype.value, user.id, title)
        await self.unit_of_work.commit()
        logger.info(f"Container {container_id} created by {user.id}")
        await self.activity.create_event(user.id, ActivityType.CONTAINER_CREATE, container_id)
        return container

    async def delete_container(self, container_id: str, user: User) -> None:
        container = await self.get_container(container_id)
        if not self.is_owner(container, user.id):
            raise UserRoleError(f"User {user.id} is not an owner.", user.id)

        await self.containers.remove(container)
        await self.unit_of_work.commit()
        logger.info(f"Container {container_id} deleted by {user.id}")
        await self.activity.create_event(user.id, ActivityType.CONTAINER_DELETE, container_id)

    def get_user_role(self, container: Container, user_id: UUID) -> Optional[Role]:
        """Return the role the user holds on the container, or None."""
        held = [
            role
            for role, members in (
                (Role.OWNER, container.owners),
                (Role.WRITER, container.writers),
                (Role.VIEWER, container.viewers),
            )
            if user_id in members
        ]
        if len(held) > 1:
            raise InvariantViolationError(
                f"User {user_id} holds several roles on container {container.id}",
                [role.value for role in held],
            )
        return held[0] if held else None

    def is_owner(self, container: Container, user_id: UUID) -> bool:
        return self.get_user_role(container, user_id) == Role.OWNER

    def is_container_user(self, container: Container, user_id: UUID) -> bool:
        return self.get_user_role(container, user_id) is not None

    async def check_user_container_access(self, user_id: UUID, container_id: str) -> bool:
        container = await self.get_container(container_id)
        return container.is_public or self.is_container_user(container, user_id)

    async def check_if_owner_or_writer(self, user_id: UUID, container_id: str) -> bool:
        container = await self.get_container(container_id)
        return self.get_user_role(container, user_id) in (Role.OWNER, Role.WRITER)

    async def apply_role(
        self,
        container: Container,
        user: User,
        role: Optional[Role],
        acting_user: Optional[User] = None,
    ) -> Optional[Role]:
        """Move ``user`` to ``role`` (None revokes); returns the previous role.

        Refuses to leave the container without an owner.
        """
        current = self.get_user_role(container, user.id)
        if current == Role.OWNER and role != Role.OWNER and len(container.owners) < 2:
            raise InvariantViolationError("User is the only owner", role)

        if role is None:
            await self.containers.remove_member(container, user.id)
            await self.container_invitations.delete_invitations(container.id, user.email)
        else:
            await self.containers.set_member_role(
                container, user.id, role, acting_user.id if acting_user else None
            )
        return current

    async def reconcile_role(
        self,
        container: Container,
        user: User,
        offered_role: Role,
        acting_user: Optional[User] = None,
        accepted_at=None,
    ) -> RoleGrant:
        """Grant an offered role only if it improves on the role held.

        Redundant or inferior offers are successful no-ops with a message.
        """
        current = self.get_user_role(container, user.id)
        if current is None:
            await self.apply_role(container, user, offered_role, acting_user)
            noun = CONTAINER_NOUNS.get(container.container_type, "project")
            message = (
                f'You have been added to {noun} "{container.title}".'
                if container.title
                else f"You have been added to a {noun}."
            )
            return RoleGrant(message, None, added=True)
        if accepted_at is not None:
            return RoleGrant("Invitation already accepted.", current)
        if is_more_limiting(current, offered_role):
            await self.apply_role(container, user, offered_role, acting_user)
            return RoleGrant("Your role was updated successfully.", current, updated=True)
        if current == offered_role:
            return RoleGrant("You already have this role.", current)
        return RoleGrant(
            "Your current role in the project is already of higher privilege.", current
        )

    async def add_container_user(
        self,
        container_id: str,
        role: Role | str,
        user_id: UUID | str,
        adding_user: Optional[User] = None,
        skip_email: bool = False,
    ) -> bool:
        """Give a user a role; returns False if they already hold exactly that role."""
        container = await self.get_container(container_id)
        role = ensure_valid_role(role)
        added_user = await self.users.get_by_id(_parse_user_id(user_id))
        if added_user is None:
            raise ValidationError("Invalid user id", user_id)

        if self.get_user_role(container, added_user.id) == role:
            return False
        previous = await self.apply_role(container, added_user, role, adding_user)
        await self.unit_of_work.commit()
        logger.info(
            f"User {added_user.id} added to {container_id} as {role.value} (was {previous})"
        )

        if previous is None and not skip_email:
            await self.notify_added_user(container, role, added_user, adding_user)
        return True

    async def update_container_user(
        self, container_id: str, role: Role | str | None, user: User
    ) -> None:
        """Move a user to ``role``, or revoke every role when ``role`` is empty."""
        container = await self.get_container(container_id)
        new_role = ensure_valid_role(role) if role else None

        previous = await self.apply_role(container, user, new_role)
        await self.unit_of_work.commit()
        logger.info(
            f"User {user.id} role on {container_id} changed from {previous} to {new_role}"
        )

    async def manage_user_role(
        self,
        acting_user: User,
        container_id: str,
        managed_user_id: Optional[str] = None,
        managed_connect_id: Optional[str] = None,
        new_role: Role | str | None = None,
        secret: Optional[str] = None,
    ) -> None:
        """Change another user's role; owners only, unless the server secret is given."""
        container = await self.get_container(container_id)
        new_role = ensure_valid_role(new_role) if new_role else None
        is_server = verify_server_secret(secret)

        if not is_server and not self.is_owner(container, acting_user.id):
            raise UserRoleError("User must be an owner to manage roles", new_role)

        if managed_user_id == PUBLIC_USER_ID:
            if new_role not in (None, Role.VIEWER):
                raise ValidationError("User can not be owner or writer", managed_user_id)
            await self.containers.set_public(container, new_role is not None)
            await self.unit_of_work.commit()
            logger.info(f"Container {container_id} public access set to {new_role is not None}")
            return

        if managed_user_id:
            managed_user = await self.users.get_by_id(_parse_user_id(managed_user_id))
        elif managed_connect_id:
            managed_user = await self.users.get_by_connect_id(managed_connect_id)
        else:
            raise ValidationError("User id must be given", None)

        if managed_user is None:
            raise ValidationError("Invalid managed user id", managed_user_id or managed_connect_id)

        if (
            not is_server
            and managed_user.id != acting_user.id
            and not self.is_container_user(container, managed_user.id)
        ):
            raise ValidationError("User is not in container", str(managed_user.id))

        await self.update_container_user(container_id, new_role, managed_user)
        await self.activity.create_event(
            acting_user.id,
            ActivityType.ROLE_CHANGE,
            container_id,
            {"managed_user_id": str(managed_user.id), "role": new_role.value if new_role else None},
        )

    async def notify_added_user(
        self,
        container: Container,
        role: Role,
        added_user: User,
        adding_user: Optional[User],
    ) -> None:
        """Tell the new collaborator and the other owners about the addition."""
        await self.notifier.send_container_invitation_acceptance(
            added_user, adding_user, container, role
        )
        for owner_id in container.owners:
            if owner_id == added_user.id or (adding_user and owner_id == adding_user.id):
                continue
            owner = await self.users.get_by_id(owner_id)
            if owner is None:
                continue
            await self.notifier.send_owner_notification_of_collaborator(
                owner, added_user, adding_user, container, role
            )
