"""MongoDB models package."""

from accessgate.models.nosql.activity import ActivityEvent, ActivityType

__all__ = ["ActivityEvent", "ActivityType"]
