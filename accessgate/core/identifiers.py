"""Typed container ids and deterministic record ids.

Record ids for invitations and requests are derived from their business keys
so that re-inviting or re-requesting the same pair lands on the same record.
The input order of each key is fixed; changing it breaks deduplication of
records already stored.
"""

import hashlib
from enum import Enum
from uuid import uuid4

from accessgate.core.exceptions import ValidationError
from accessgate.core.roles import Role


class ContainerType(str, Enum):
    """Kinds of shared containers."""

    PROJECT = "project"
    LIBRARY = "library"
    LIBRARY_COLLECTION = "libraryCollection"


CONTAINER_PREFIXES: dict[ContainerType, str] = {
    ContainerType.PROJECT: "MPProject",
    ContainerType.LIBRARY: "MPLibrary",
    ContainerType.LIBRARY_COLLECTION: "MPLibraryCollection",
}

CONTAINER_INVITATION_PREFIX = "MPContainerInvitation"
INVITATION_PREFIX = "MPInvitation"
CONTAINER_REQUEST_PREFIX = "MPContainerRequest"
INVITATION_TOKEN_PREFIX = "InvitationToken"

PUBLIC_USER_ID = "*"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def container_type(container_id: str) -> ContainerType:
    """Resolve the container type from a typed container id."""
    prefix, sep, opaque = container_id.partition(":")
    if sep and opaque:
        for ctype, known in CONTAINER_PREFIXES.items():
            if prefix == known:
                return ctype
    raise ValidationError("Invalid container id.", container_id)


def new_container_id(ctype: ContainerType) -> str:
    return f"{CONTAINER_PREFIXES[ctype]}:{uuid4()}"


def _digest(*parts: str) -> str:
    return hashlib.sha1(":".join(parts).encode("utf-8")).hexdigest()


def container_invitation_id(
    inviting_email: str, invited_email: str, container_id: str
) -> str:
    """Deterministic id of an invitation to a container."""
    digest = _digest(
        normalize_email(inviting_email), normalize_email(invited_email), container_id
    )
    return f"{CONTAINER_INVITATION_PREFIX}:{digest}"


def invitation_id(inviting_email: str, invited_email: str) -> str:
    """Deterministic id of a personal collaboration invitation."""
    digest = _digest(normalize_email(inviting_email), normalize_email(invited_email))
    return f"{INVITATION_PREFIX}:{digest}"


def container_request_id(user_id: str, container_id: str) -> str:
    """Deterministic id of an access request."""
    return f"{CONTAINER_REQUEST_PREFIX}:{_digest(str(user_id), container_id)}"


def invitation_token_id(container_id: str, role: Role) -> str:
    return f"{INVITATION_TOKEN_PREFIX}|{container_id}+{Role(role).value}"
