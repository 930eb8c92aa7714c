"""API dependencies for dependency injection."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from accessgate.core.security import verify_access_token
from accessgate.db.postgres import get_db
from accessgate.models.sql.user import User
from accessgate.repositories.base import SQLUnitOfWork
from accessgate.repositories.containers import SQLContainerRepository
from accessgate.repositories.invitations import (
    SQLContainerInvitationRepository,
    SQLInvitationRepository,
    SQLInvitationTokenRepository,
)
from accessgate.repositories.requests import SQLContainerRequestRepository
from accessgate.repositories.users import SQLCollaborationRepository, SQLUserRepository
from accessgate.services.access_control import AccessControlService
from accessgate.services.activity import ActivityTrackingService
from accessgate.services.container_invitations import ContainerInvitationService
from accessgate.services.container_requests import ContainerRequestService
from accessgate.services.invitations import InvitationService
from accessgate.services.notifications import CeleryNotificationSender, NotificationSender

# Security scheme
security = HTTPBearer()


async def _resolve_user(token: str, db: AsyncSession) -> User:
    try:
        payload = verify_access_token(token)
        user_id = UUID(payload["sub"])
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await SQLUserRepository(db).get_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get the current authenticated user."""
    return await _resolve_user(credentials.credentials, db)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(
        HTTPBearer(auto_error=False)
    ),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Get the current user if a bearer token was sent, otherwise None."""
    if credentials is None:
        return None
    return await _resolve_user(credentials.credentials, db)


def get_notifier() -> NotificationSender:
    return CeleryNotificationSender()


def get_activity_tracker() -> ActivityTrackingService:
    return ActivityTrackingService()


def get_access_control_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationSender = Depends(get_notifier),
    activity: ActivityTrackingService = Depends(get_activity_tracker),
) -> AccessControlService:
    return AccessControlService(
        containers=SQLContainerRepository(db),
        users=SQLUserRepository(db),
        container_invitations=SQLContainerInvitationRepository(db),
        notifier=notifier,
        activity=activity,
        unit_of_work=SQLUnitOfWork(db),
    )


def get_invitation_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationSender = Depends(get_notifier),
    activity: ActivityTrackingService = Depends(get_activity_tracker),
) -> InvitationService:
    return InvitationService(
        invitations=SQLInvitationRepository(db),
        users=SQLUserRepository(db),
        collaborations=SQLCollaborationRepository(db),
        notifier=notifier,
        activity=activity,
        unit_of_work=SQLUnitOfWork(db),
    )


def get_container_invitation_service(
    db: AsyncSession = Depends(get_db),
    access: AccessControlService = Depends(get_access_control_service),
    notifier: NotificationSender = Depends(get_notifier),
    activity: ActivityTrackingService = Depends(get_activity_tracker),
) -> ContainerInvitationService:
    return ContainerInvitationService(
        access=access,
        container_invitations=SQLContainerInvitationRepository(db),
        invitation_tokens=SQLInvitationTokenRepository(db),
        users=SQLUserRepository(db),
        notifier=notifier,
        activity=activity,
        unit_of_work=SQLUnitOfWork(db),
    )


def get_container_request_service(
    db: AsyncSession = Depends(get_db),
    access: AccessControlService = Depends(get_access_control_service),
    notifier: NotificationSender = Depends(get_notifier),
    activity: ActivityTrackingService = Depends(get_activity_tracker),
) -> ContainerRequestService:
    return ContainerRequestService(
        access=access,
        requests=SQLContainerRequestRepository(db),
        users=SQLUserRepository(db),
        notifier=notifier,
        activity=activity,
        unit_of_work=SQLUnitOfWork(db),
    )
