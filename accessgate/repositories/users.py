"""User, profile and collaboration repositories."""

from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy import select

from accessgate.core.identifiers import normalize_email
from accessgate.models.sql.user import Collaboration, User, UserProfile
from accessgate.repositories.base import SQLRepository


class UserRepository(Protocol):
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        ...

    async def get_by_email(self, email: str) -> Optional[User]:
        ...

    async def get_by_connect_id(self, connect_user_id: str) -> Optional[User]:
        ...

    async def create(
        self, email: str, name: Optional[str], hashed_password: Optional[str]
    ) -> User:
        ...

    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        ...

    async def create_profile(self, user: User, display_name: str) -> UserProfile:
        ...


class CollaborationRepository(Protocol):
    async def create(self, inviting_user_id: UUID, invited_user_id: UUID) -> Collaboration:
        ...


class SQLUserRepository(SQLRepository):
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_by_connect_id(self, connect_user_id: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.connect_user_id == connect_user_id)
        )
        return result.scalar_one_or_none()

    async def create(
        self, email: str, name: Optional[str], hashed_password: Optional[str]
    ) -> User:
        user = User(
            email=normalize_email(email),
            name=name,
            hashed_password=hashed_password,
        )
        self.session.add(user)
        await self._flush()
        return user

    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        result = await self.session.execute(
            select(UserProfile).where(UserProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_profile(self, user: User, display_name: str) -> UserProfile:
        profile = UserProfile(user_id=user.id, display_name=display_name)
        self.session.add(profile)
        await self._flush()
        return profile


class SQLCollaborationRepository(SQLRepository):
    async def create(self, inviting_user_id: UUID, invited_user_id: UUID) -> Collaboration:
        result = await self.session.execute(
            select(Collaboration).where(
                Collaboration.inviting_user_id == inviting_user_id,
                Collaboration.invited_user_id == invited_user_id,
            )
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            return existing

        collaboration = Collaboration(
            inviting_user_id=inviting_user_id, invited_user_id=invited_user_id
        )
        self.session.add(collaboration)
        await self._flush()
        return collaboration
