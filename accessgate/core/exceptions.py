"""Domain errors raised by the access-control services.

Every error carries the HTTP status the API layer answers with, so routers
never translate errors themselves.
"""

from typing import Any

from fastapi import status


class AccessGatewayError(Exception):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, invalid_value: Any = None):
        super().__init__(message)
        self.message = message
        self.invalid_value = invalid_value

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "error": type(self).__name__}


class InvalidCredentialsError(AccessGatewayError):
    """The acting or invited identity could not be resolved."""

    status_code = status.HTTP_401_UNAUTHORIZED


class UserRoleError(AccessGatewayError):
    """The acting user's role does not permit the operation."""

    status_code = status.HTTP_403_FORBIDDEN


class InvariantViolationError(AccessGatewayError):
    """The operation would break a membership invariant."""

    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(AccessGatewayError):
    """Malformed or inconsistent input."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, invalid_value: Any = None):
        super().__init__(f"Validation error: {message}", invalid_value)


class MissingContainerError(AccessGatewayError):
    """An invitation points at a container that no longer exists."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, container_id: str):
        super().__init__(f"Missing container: {container_id}", container_id)


class ConflictingRecordError(AccessGatewayError):
    """A record that should not exist already does."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, existing_value: Any = None):
        super().__init__(f"Conflict error: {message}", existing_value)


class ConcurrentUpdateError(AccessGatewayError):
    """The record changed underneath the operation; safe to retry."""

    status_code = status.HTTP_409_CONFLICT


class RecordNotFoundError(AccessGatewayError):
    status_code = status.HTTP_404_NOT_FOUND


class RecordGoneError(AccessGatewayError):
    status_code = status.HTTP_410_GONE


class NotificationError(AccessGatewayError):
    """A notification failed after the access change was committed.

    ``outcome`` holds the result of the committed operation.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, outcome: Any = None):
        super().__init__(message)
        self.outcome = outcome

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if hasattr(self.outcome, "model_dump"):
            data["outcome"] = self.outcome.model_dump(mode="json")
        elif self.outcome is not None:
            data["outcome"] = self.outcome
        return data
