"""Container membership store."""

from datetime import UTC, datetime
from typing import Optional, Protocol
from uuid import UUID

from accessgate.core.roles import Role
from accessgate.models.sql.container import Container, ContainerMember
from accessgate.repositories.base import SQLRepository


class ContainerRepository(Protocol):
    async def get_by_id(self, container_id: str) -> Optional[Container]:
        ...

    async def create(
        self, container_id: str, container_type: str, owner_id: UUID, title: Optional[str]
    ) -> Container:
        ...

    async def set_member_role(
        self, container: Container, user_id: UUID, role: Role, added_by: Optional[UUID]
    ) -> None:
        ...

    async def remove_member(self, container: Container, user_id: UUID) -> None:
        ...

    async def set_public(self, container: Container, is_public: bool) -> None:
        ...

    async def remove(self, container: Container) -> None:
        ...


class SQLContainerRepository(SQLRepository):
    async def get_by_id(self, container_id: str) -> Optional[Container]:
        return await self.session.get(Container, container_id)

    async def create(
        self, container_id: str, container_type: str, owner_id: UUID, title: Optional[str]
    ) -> Container:
        container = Container(
            id=container_id,
            container_type=container_type,
            title=title,
            is_public=False,
        )
        container.members.append(
            ContainerMember(user_id=owner_id, role=Role.OWNER.value, added_by=owner_id)
        )
        self.session.add(container)
        await self._flush()
        return container

    async def set_member_role(
        self, container: Container, user_id: UUID, role: Role, added_by: Optional[UUID]
    ) -> None:
        """Put a user in exactly one role set, moving them out of any other."""
        member = _find_member(container, user_id)
        if member is None:
            container.members.append(
                ContainerMember(user_id=user_id, role=Role(role).value, added_by=added_by)
            )
        else:
            member.role = Role(role).value
        _bump(container)
        await self._flush()

    async def remove_member(self, container: Container, user_id: UUID) -> None:
        member = _find_member(container, user_id)
        if member is None:
            return
        container.members.remove(member)
        _bump(container)
        await self._flush()

    async def set_public(self, container: Container, is_public: bool) -> None:
        container.is_public = is_public
        _bump(container)
        await self._flush()

    async def remove(self, container: Container) -> None:
        await self.session.delete(container)
        await self._flush()


def _find_member(container: Container, user_id: UUID) -> Optional[ContainerMember]:
    for member in container.members:
        if member.user_id == user_id:
            return member
    return None


def _bump(container: Container) -> None:
    # Dirty the parent row so the version check covers membership changes.
    container.updated_at = datetime.now(UTC)
