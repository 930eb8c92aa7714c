"""Invitation SQLAlchemy models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from accessgate.db.postgres import Base


class Invitation(Base):
    """Personal collaboration invitation addressed to an email."""

    __tablename__ = "ag_invitations"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    inviting_user_id: Mapped[UUID] = mapped_column(
        ForeignKey("ag_users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    invited_user_email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    invited_user_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, invited_user_email={self.invited_user_email})>"


class ContainerInvitation(Base):
    """Pending offer of a role on a container, addressed to an email."""

    __tablename__ = "ag_container_invitations"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    inviting_user_id: Mapped[UUID] = mapped_column(
        ForeignKey("ag_users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    invited_user_email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    invited_user_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    invited_user_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    container_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    container_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, nullable=False
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<ContainerInvitation(id={self.id}, container_id={self.container_id}, role={self.role})>"


class InvitationToken(Base):
    """Shareable link granting a role on a container to whoever presents it."""

    __tablename__ = "ag_invitation_tokens"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    container_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    permitted_role: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), index=True, nullable=False
    )

    def __repr__(self) -> str:
        return f"<InvitationToken(container_id={self.container_id}, role={self.permitted_role})>"
