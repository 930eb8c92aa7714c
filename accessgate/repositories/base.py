"""Shared repository plumbing: the unit of work and flush error translation."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from accessgate.core.exceptions import ConcurrentUpdateError


class UnitOfWork(Protocol):
    """Commits the writes made through the repositories sharing it."""

    async def commit(self) -> None:
        ...


class SQLUnitOfWork:
    """Unit of work over one SQLAlchemy async session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            raise ConcurrentUpdateError(
                "The record was modified concurrently, retry the operation."
            ) from e


class SQLRepository:
    """Base class for repositories bound to an async session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _flush(self) -> None:
        try:
            await self.session.flush()
        except StaleDataError as e:
            raise ConcurrentUpdateError(
                "The record was modified concurrently, retry the operation."
            ) from e
