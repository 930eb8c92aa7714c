"""PostgreSQL engine, request sessions and worker sessions."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from accessgate.config import settings

engine = create_async_engine(
    settings.POSTGRES_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    pool_size=settings.POSTGRES_POOL_SIZE,
    max_overflow=settings.POSTGRES_MAX_OVERFLOW,
    pool_recycle=settings.POSTGRES_POOL_RECYCLE,
)

# Membership reads after commit must not reload lazily in async code
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


async def init_postgres() -> None:
    """Create the access-control tables."""
    from accessgate.models.sql import container, invitation, request, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_postgres() -> None:
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; services commit their own writes."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def worker_session() -> AsyncGenerator[AsyncSession, None]:
    """Session for Celery tasks.

    Each task runs its own event loop, so pooled connections can not be
    reused between runs; the engine here is unpooled and disposed on exit.
    """
    task_engine = create_async_engine(settings.POSTGRES_URL, poolclass=NullPool)
    try:
        async with AsyncSession(task_engine, expire_on_commit=False) as session:
            yield session
    finally:
        await task_engine.dispose()
