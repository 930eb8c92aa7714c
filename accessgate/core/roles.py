"""Container roles, their privilege order, and role-based permissions."""

from collections.abc import Iterable
from enum import Enum
from typing import Any

from accessgate.core.exceptions import ValidationError


class Role(str, Enum):
    """User roles within a container."""

    OWNER = "Owner"
    WRITER = "Writer"
    VIEWER = "Viewer"


# Privilege rank; higher is less limiting.
ROLE_RANK: dict[Role, int] = {
    Role.VIEWER: 0,
    Role.WRITER: 1,
    Role.OWNER: 2,
}

# Roles a shareable link token may grant.
LINK_TOKEN_ROLES: frozenset[Role] = frozenset({Role.VIEWER, Role.WRITER})


def is_valid_role(value: Any) -> bool:
    """Check whether a value names one of the container roles."""
    if isinstance(value, Role):
        return True
    if not isinstance(value, str):
        return False
    return value in {role.value for role in Role}


def ensure_valid_role(value: Any) -> Role:
    """Coerce a value to a Role or raise a validation error."""
    if not is_valid_role(value):
        raise ValidationError(f"Invalid role '{value}'.", value)
    return Role(value)


def rank(role: Role) -> int:
    """Return the privilege rank of a role."""
    return ROLE_RANK[ensure_valid_role(role)]


def is_more_limiting(a: Role, b: Role) -> bool:
    """Return True if role ``a`` grants strictly less than role ``b``."""
    return rank(a) < rank(b)


def compare_roles(a: Role, b: Role) -> int:
    """Compare two roles: -1 if a is more limiting, 0 if equal, 1 otherwise."""
    ra, rb = rank(a), rank(b)
    if ra == rb:
        return 0
    return 1 if ra > rb else -1


def least_limiting(roles: Iterable[Role]) -> Role:
    """Return the least limiting (highest privilege) role of the given roles."""
    candidates = [ensure_valid_role(role) for role in roles]
    if not candidates:
        raise ValueError("least_limiting() requires at least one role")
    return max(candidates, key=rank)


class Permission(str, Enum):
    """Available permissions on a container."""

    CONTAINER_READ = "container:read"
    CONTAINER_WRITE = "container:write"
    CONTAINER_DELETE = "container:delete"

    INVITATION_SEND = "invitation:send"
    INVITATION_REVOKE = "invitation:revoke"
    INVITATION_TOKEN_MINT = "invitation_token:mint"

    ROLE_MANAGE = "role:manage"
    REQUEST_RESPOND = "request:respond"


ROLE_PERMISSIONS: dict[Role, set[Permission]] = {
    Role.OWNER: {
        Permission.CONTAINER_READ,
        Permission.CONTAINER_WRITE,
        Permission.CONTAINER_DELETE,
        Permission.INVITATION_SEND,
        Permission.INVITATION_REVOKE,
        Permission.INVITATION_TOKEN_MINT,
        Permission.ROLE_MANAGE,
        Permission.REQUEST_RESPOND,
    },
    Role.WRITER: {
        Permission.CONTAINER_READ,
        Permission.CONTAINER_WRITE,
    },
    Role.VIEWER: {
        Permission.CONTAINER_READ,
    },
}


def has_permission(role: Role | None, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    if role is None:
        return False
    return permission in ROLE_PERMISSIONS.get(role, set())


def has_any_permission(role: Role | None, permissions: list[Permission]) -> bool:
    """Check if a role has any of the specified permissions."""
    return any(has_permission(role, perm) for perm in permissions)


def has_all_permissions(role: Role | None, permissions: list[Permission]) -> bool:
    """Check if a role has all of the specified permissions."""
    return all(has_permission(role, perm) for perm in permissions)
