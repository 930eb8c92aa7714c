"""Pytest fixtures and configuration."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from accessgate.api.deps import get_activity_tracker, get_notifier
from accessgate.core.identifiers import ContainerType, new_container_id
from accessgate.core.roles import Role
from accessgate.core.security import create_access_token
from accessgate.db.postgres import Base, get_db
from accessgate.main import app
from accessgate.models.sql.container import Container
from accessgate.models.sql.user import User, UserProfile
from accessgate.repositories.base import SQLUnitOfWork
from accessgate.repositories.containers import SQLContainerRepository
from accessgate.repositories.invitations import (
    SQLContainerInvitationRepository,
    SQLInvitationRepository,
    SQLInvitationTokenRepository,
)
from accessgate.repositories.requests import SQLContainerRequestRepository
from accessgate.repositories.users import SQLCollaborationRepository, SQLUserRepository
from accessgate.services.access_control import AccessControlService
from accessgate.services.activity import ActivityTrackingService
from accessgate.services.container_invitations import ContainerInvitationService
from accessgate.services.container_requests import ContainerRequestService
from accessgate.services.invitations import InvitationService

# Test database URL (use SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session on a fresh in-memory database."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def notifier() -> AsyncMock:
    """Notification sender that records calls instead of queueing email."""
    return AsyncMock()


@pytest.fixture
def activity_collection() -> MagicMock:
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    return collection


@pytest.fixture
def activity(activity_collection: MagicMock) -> ActivityTrackingService:
    return ActivityTrackingService(collection_getter=lambda: activity_collection)


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory creating a user, with a profile unless ``profile=False``."""

    async def _make_user(email: str, name: Optional[str] = None, profile: bool = True) -> User:
        user = User(id=uuid4(), email=email.lower(), name=name or email.split("@")[0])
        db_session.add(user)
        if profile:
            db_session.add(UserProfile(user_id=user.id, display_name=user.name))
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_container(db_session: AsyncSession) -> Callable[..., Awaitable[Container]]:
    """Factory creating a container owned by ``owner`` with optional extra members."""

    async def _make_container(
        owner: User,
        title: Optional[str] = "P1",
        members: Optional[dict[User, Role]] = None,
        container_type: ContainerType = ContainerType.PROJECT,
    ) -> Container:
        containers = SQLContainerRepository(db_session)
        container = await containers.create(
            new_container_id(container_type), container_type.value, owner.id, title
        )
        for user, role in (members or {}).items():
            await containers.set_member_role(container, user.id, role, owner.id)
        await db_session.commit()
        return container

    return _make_container


@pytest_asyncio.fixture
async def owner(make_user) -> User:
    return await make_user("owner@x.com", "Owner One")


@pytest.fixture
def access_service(
    db_session: AsyncSession, notifier: AsyncMock, activity: ActivityTrackingService
) -> AccessControlService:
    return AccessControlService(
        containers=SQLContainerRepository(db_session),
        users=SQLUserRepository(db_session),
        container_invitations=SQLContainerInvitationRepository(db_session),
        notifier=notifier,
        activity=activity,
        unit_of_work=SQLUnitOfWork(db_session),
    )


@pytest.fixture
def invitation_service(
    db_session: AsyncSession, notifier: AsyncMock, activity: ActivityTrackingService
) -> InvitationService:
    return InvitationService(
        invitations=SQLInvitationRepository(db_session),
        users=SQLUserRepository(db_session),
        collaborations=SQLCollaborationRepository(db_session),
        notifier=notifier,
        activity=activity,
        unit_of_work=SQLUnitOfWork(db_session),
    )


@pytest.fixture
def container_invitation_service(
    db_session: AsyncSession,
    access_service: AccessControlService,
    notifier: AsyncMock,
    activity: ActivityTrackingService,
) -> ContainerInvitationService:
    return ContainerInvitationService(
        access=access_service,
        container_invitations=SQLContainerInvitationRepository(db_session),
        invitation_tokens=SQLInvitationTokenRepository(db_session),
        users=SQLUserRepository(db_session),
        notifier=notifier,
        activity=activity,
        unit_of_work=SQLUnitOfWork(db_session),
    )


@pytest.fixture
def container_request_service(
    db_session: AsyncSession,
    access_service: AccessControlService,
    notifier: AsyncMock,
    activity: ActivityTrackingService,
) -> ContainerRequestService:
    return ContainerRequestService(
        access=access_service,
        requests=SQLContainerRequestRepository(db_session),
        users=SQLUserRepository(db_session),
        notifier=notifier,
        activity=activity,
        unit_of_work=SQLUnitOfWork(db_session),
    )


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, notifier: AsyncMock, activity: ActivityTrackingService
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_activity_tracker] = lambda: activity

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers_for(user: User) -> dict:
    """Create authentication headers for a user."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def owner_headers(owner: User) -> dict:
    return auth_headers_for(owner)


@pytest.fixture
def headers_for() -> Callable[[User], dict]:
    return auth_headers_for
