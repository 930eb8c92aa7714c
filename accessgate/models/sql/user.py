"""User, profile and collaboration SQLAlchemy models."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from accessgate.db.postgres import Base

if TYPE_CHECKING:
    from accessgate.models.sql.container import ContainerMember


class User(Base):
    """User model for authentication and identification."""

    __tablename__ = "ag_users"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hashed_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    connect_user_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
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
    profile: Mapped[Optional["UserProfile"]] = relationship(
        "UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    memberships: Mapped[List["ContainerMember"]] = relationship(
        "ContainerMember",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="[ContainerMember.user_id]",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"


class UserProfile(Base):
    """Public profile shown to collaborators."""

    __tablename__ = "ag_user_profiles"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("ag_users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    affiliation: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")

    def __repr__(self) -> str:
        return f"<UserProfile(user_id={self.user_id}, display_name={self.display_name})>"


class Collaboration(Base):
    """Personal collaboration created by accepting a personal invitation."""

    __tablename__ = "ag_collaborations"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    inviting_user_id: Mapped[UUID] = mapped_column(
        ForeignKey("ag_users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    invited_user_id: Mapped[UUID] = mapped_column(
        ForeignKey("ag_users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("inviting_user_id", "invited_user_id", name="uq_collaboration"),
    )
