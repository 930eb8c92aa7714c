"""Invitation, container invitation and invitation token repositories."""

from datetime import datetime
from typing import Any, Optional, Protocol

from sqlalchemy import delete, select

from accessgate.core.identifiers import normalize_email
from accessgate.models.sql.invitation import ContainerInvitation, Invitation, InvitationToken
from accessgate.repositories.base import SQLRepository


class InvitationRepository(Protocol):
    async def get_by_id(self, invitation_id: str) -> Optional[Invitation]:
        ...

    async def create(self, invitation: Invitation) -> Invitation:
        ...

    async def patch(self, invitation_id: str, **fields: Any) -> None:
        ...

    async def touch(self, invitation_id: str, expires_at: datetime) -> None:
        ...

    async def remove(self, invitation_id: str) -> None:
        ...

    async def get_all_by_email(self, email: str) -> list[Invitation]:
        ...


class ContainerInvitationRepository(Protocol):
    async def get_by_id(self, invitation_id: str) -> Optional[ContainerInvitation]:
        ...

    async def create(self, invitation: ContainerInvitation) -> ContainerInvitation:
        ...

    async def patch(self, invitation_id: str, **fields: Any) -> None:
        ...

    async def touch(self, invitation_id: str, expires_at: datetime) -> None:
        ...

    async def remove(self, invitation_id: str) -> None:
        ...

    async def get_invitations_for_user(
        self, container_id: str, email: str
    ) -> list[ContainerInvitation]:
        ...

    async def get_all_by_email(self, email: str) -> list[ContainerInvitation]:
        ...

    async def delete_invitations(self, container_id: str, email: str) -> None:
        ...


class InvitationTokenRepository(Protocol):
    async def get_by_id(self, token_id: str) -> Optional[InvitationToken]:
        ...

    async def get_one(self, token: str) -> Optional[InvitationToken]:
        ...

    async def create(self, invitation_token: InvitationToken) -> InvitationToken:
        ...

    async def touch(self, token_id: str, expires_at: datetime) -> None:
        ...


class _DocumentRepository(SQLRepository):
    """get/create/patch/touch/remove over one model keyed by a string id."""

    model: Any = None

    async def get_by_id(self, record_id: str):
        return await self.session.get(self.model, record_id)

    async def create(self, record):
        self.session.add(record)
        await self._flush()
        return record

    async def patch(self, record_id: str, **fields: Any) -> None:
        record = await self.get_by_id(record_id)
        if record is None:
            return
        for name, value in fields.items():
            setattr(record, name, value)
        await self._flush()

    async def touch(self, record_id: str, expires_at: datetime) -> None:
        await self.patch(record_id, expires_at=expires_at)

    async def remove(self, record_id: str) -> None:
        record = await self.get_by_id(record_id)
        if record is None:
            return
        await self.session.delete(record)
        await self._flush()

    async def remove_expired(self, now: datetime) -> int:
        """Delete records whose expiry has passed; used by the purge sweep."""
        result = await self.session.execute(
            delete(self.model).where(self.model.expires_at < now)
        )
        return result.rowcount or 0


class SQLInvitationRepository(_DocumentRepository):
    model = Invitation

    async def get_all_by_email(self, email: str) -> list[Invitation]:
        result = await self.session.execute(
            select(Invitation).where(Invitation.invited_user_email == normalize_email(email))
        )
        return list(result.scalars().all())


class SQLContainerInvitationRepository(_DocumentRepository):
    model = ContainerInvitation

    async def get_invitations_for_user(
        self, container_id: str, email: str
    ) -> list[ContainerInvitation]:
        result = await self.session.execute(
            select(ContainerInvitation)
            .where(
                ContainerInvitation.container_id == container_id,
                ContainerInvitation.invited_user_email == normalize_email(email),
            )
            .order_by(ContainerInvitation.created_at)
        )
        return list(result.scalars().all())

    async def get_all_by_email(self, email: str) -> list[ContainerInvitation]:
        result = await self.session.execute(
            select(ContainerInvitation).where(
                ContainerInvitation.invited_user_email == normalize_email(email)
            )
        )
        return list(result.scalars().all())

    async def delete_invitations(self, container_id: str, email: str) -> None:
        for invitation in await self.get_invitations_for_user(container_id, email):
            await self.remove(invitation.id)


class SQLInvitationTokenRepository(_DocumentRepository):
    model = InvitationToken

    async def get_one(self, token: str) -> Optional[InvitationToken]:
        result = await self.session.execute(
            select(InvitationToken).where(InvitationToken.token == token)
        )
        return result.scalar_one_or_none()
