"""Activity event models for MongoDB."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActivityType(str, Enum):
    """Types of access activity events."""

    SEND_INVITATION = "invitation.send"
    ACCEPT_INVITATION = "invitation.accept"
    REJECT_INVITATION = "invitation.reject"
    UNINVITE = "invitation.revoke"
    ACCEPT_INVITATION_TOKEN = "invitation_token.accept"
    CREATE_CONTAINER_REQUEST = "container_request.create"
    RESPOND_CONTAINER_REQUEST = "container_request.respond"
    ROLE_CHANGE = "container.role_change"
    CONTAINER_CREATE = "container.create"
    CONTAINER_DELETE = "container.delete"
    NOTIFICATION_FAILED = "notification.failed"


class ActivityEvent(BaseModel):
    """Activity event model for MongoDB storage."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str | None = Field(None, alias="_id")
    user_id: str
    event_type: ActivityType
    container_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_mongo(self) -> dict[str, Any]:
        """Convert to MongoDB document format."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: dict[str, Any]) -> "ActivityEvent":
        """Create from MongoDB document."""
        if data.get("_id"):
            data["_id"] = str(data["_id"])
        return cls(**data)
