"""Best-effort activity tracking in MongoDB."""

import logging
from typing import Any, Callable
from uuid import UUID

from accessgate.db.mongodb import get_activities_collection
from accessgate.models.nosql.activity import ActivityEvent, ActivityType

logger = logging.getLogger(__name__)


class ActivityTrackingService:
    """Records access events; a storage failure never fails the caller."""

    def __init__(self, collection_getter: Callable[[], Any] = get_activities_collection):
        self._collection_getter = collection_getter

    async def create_event(
        self,
        user_id: UUID | str,
        event_type: ActivityType,
        container_id: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        event = ActivityEvent(
            user_id=str(user_id),
            event_type=event_type,
            container_id=container_id,
            payload=payload or {},
        )
        try:
            await self._collection_getter().insert_one(event.to_mongo())
        except Exception as e:
            logger.warning(f"Could not record activity {event.event_type} (non-fatal): {e}")
