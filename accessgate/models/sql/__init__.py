"""SQLAlchemy models package."""

from accessgate.models.sql.container import Container, ContainerMember
from accessgate.models.sql.invitation import ContainerInvitation, Invitation, InvitationToken
from accessgate.models.sql.request import ContainerRequest
from accessgate.models.sql.user import Collaboration, User, UserProfile

__all__ = [
    "User",
    "UserProfile",
    "Collaboration",
    "Container",
    "ContainerMember",
    "Invitation",
    "ContainerInvitation",
    "InvitationToken",
    "ContainerRequest",
]
