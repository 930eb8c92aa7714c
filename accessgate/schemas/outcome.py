"""Outcome returned by operations that may legitimately change nothing."""

from pydantic import BaseModel


class AccessOutcome(BaseModel):
    """Result of accepting an invitation, token or request."""

    container_id: str | None = None
    message: str
