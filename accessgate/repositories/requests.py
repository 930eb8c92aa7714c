"""Container request repository."""

from typing import Any, Optional, Protocol

from accessgate.models.sql.request import ContainerRequest
from accessgate.repositories.base import SQLRepository


class ContainerRequestRepository(Protocol):
    async def get_by_id(self, request_id: str) -> Optional[ContainerRequest]:
        ...

    async def create(self, request: ContainerRequest) -> ContainerRequest:
        ...

    async def patch(self, request_id: str, **fields: Any) -> None:
        ...

    async def remove(self, request_id: str) -> None:
        ...


class SQLContainerRequestRepository(SQLRepository):
    async def get_by_id(self, request_id: str) -> Optional[ContainerRequest]:
        return await self.session.get(ContainerRequest, request_id)

    async def create(self, request: ContainerRequest) -> ContainerRequest:
        self.session.add(request)
        await self._flush()
        return request

    async def patch(self, request_id: str, **fields: Any) -> None:
        request = await self.get_by_id(request_id)
        if request is None:
            return
        for name, value in fields.items():
            setattr(request, name, value)
        await self._flush()

    async def remove(self, request_id: str) -> None:
        request = await self.get_by_id(request_id)
        if request is None:
            return
        await self.session.delete(request)
        await self._flush()
