"""Container and container membership SQLAlchemy models."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accessgate.core.roles import Role
from accessgate.db.postgres import Base

if TYPE_CHECKING:
    from accessgate.models.sql.user import User


class Container(Base):
    """A shared resource (project, library, library collection)."""

    __tablename__ = "ag_containers"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    container_type: Mapped[str] = mapped_column(String(50), index=True, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    members: Mapped[List["ContainerMember"]] = relationship(
        "ContainerMember",
        back_populates="container",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # Membership writes bump version_id; a stale version fails the flush.
    __mapper_args__ = {"version_id_col": version_id}

    def _members_with(self, role: Role) -> set[UUID]:
        return {m.user_id for m in self.members if m.role == role.value}

    @property
    def owners(self) -> set[UUID]:
        return self._members_with(Role.OWNER)

    @property
    def writers(self) -> set[UUID]:
        return self._members_with(Role.WRITER)

    @property
    def viewers(self) -> set[UUID]:
        return self._members_with(Role.VIEWER)

    def __repr__(self) -> str:
        return f"<Container(id={self.id}, type={self.container_type})>"


class ContainerMember(Base):
    """One user's role on a container."""

    __tablename__ = "ag_container_members"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    container_id: Mapped[str] = mapped_column(
        ForeignKey("ag_containers.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("ag_users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    added_by: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("ag_users.id", ondelete="SET NULL"), nullable=True
    )
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # One role per user per container
    __table_args__ = (
        UniqueConstraint("container_id", "user_id", name="uq_container_member"),
    )

    container: Mapped["Container"] = relationship("Container", back_populates="members")
    user: Mapped["User"] = relationship(
        "User", back_populates="memberships", foreign_keys=[user_id]
    )

    def __repr__(self) -> str:
        return f"<ContainerMember(container_id={self.container_id}, user_id={self.user_id}, role={self.role})>"
