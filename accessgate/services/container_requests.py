"""Requests from non-members for a role on a container."""

import logging

from accessgate.core.exceptions import NotificationError, UserRoleError, ValidationError
from accessgate.core.identifiers import container_request_id
from accessgate.core.roles import Role, ensure_valid_role, is_more_limiting
from accessgate.models.nosql.activity import ActivityType
from accessgate.models.sql.request import ContainerRequest
from accessgate.models.sql.user import User
from accessgate.repositories.base import UnitOfWork
from accessgate.repositories.requests import ContainerRequestRepository
from accessgate.repositories.users import UserRepository
from accessgate.schemas.outcome import AccessOutcome
from accessgate.services.access_control import AccessControlService
from accessgate.services.activity import ActivityTrackingService
from accessgate.services.notifications import NotificationSender

logger = logging.getLogger(__name__)


class ContainerRequestService:
    def __init__(
        self,
        access: AccessControlService,
        requests: ContainerRequestRepository,
        users: UserRepository,
        notifier: NotificationSender,
        activity: ActivityTrackingService,
        unit_of_work: UnitOfWork,
    ):
        self.access = access
        self.requests = requests
        self.users = users
        self.notifier = notifier
        self.activity = activity
        self.unit_of_work = unit_of_work

    async def create(
        self,
        requesting_user: User,
        container_id: str,
        role: Role | str,
        skip_email: bool = False,
    ) -> str:
        """Ask the owners for ``role``; returns the request id.

        Only escalations can be requested: asking for a role equal to or
        below the one already held is rejected.
        """
        container = await self.access.get_container(container_id)
        role = ensure_valid_role(role)

        current = self.access.get_user_role(container, requesting_user.id)
        if current is not None and not is_more_limiting(current, role):
            raise ValidationError(
                f"User already has a role at least as privileged as {role.value}", current.value
            )

        profile = await self.users.get_profile(requesting_user.id)
        if profile is None:
            raise ValidationError("Profile of the requesting user could not be found", requesting_user.id)

        request_id = container_request_id(str(requesting_user.id), container_id)
        if await self.requests.get_by_id(request_id) is not None:
            await self.requests.patch(
                request_id, role=role.value, user_display_name=profile.display_name
            )
        else:
            await self.requests.create(
                ContainerRequest(
                    id=request_id,
                    user_id=requesting_user.id,
                    container_id=container_id,
                    role=role.value,
                    user_display_name=profile.display_name,
                )
            )
        await self.unit_of_work.commit()
        logger.info(f"User {requesting_user.id} requested {role.value} on {container_id}")

        await self.activity.create_event(
            requesting_user.id,
            ActivityType.CREATE_CONTAINER_REQUEST,
            container_id,
            {"request_id": request_id, "role": role.value},
        )

        if not skip_email:
            try:
                for owner_id in container.owners:
                    owner = await self.users.get_by_id(owner_id)
                    if owner is not None:
                        await self.notifier.send_container_request(
                            owner, requesting_user, container, role
                        )
            except NotificationError as e:
                raise NotificationError(e.message, request_id) from e
        return request_id

    async def response(
        self,
        request_id: str,
        acting_user: User,
        accept: bool,
        skip_email: bool = False,
    ) -> AccessOutcome:
        """Accept or reject a request; owners only.

        The request is removed either way. The membership change is committed
        before the requester is notified.
        """
        request = await self.requests.get_by_id(request_id)
        if request is None:
            raise ValidationError("Request does not exist", request_id)

        requesting_user = await self.users.get_by_id(request.user_id)
        if requesting_user is None:
            raise ValidationError("Requesting user does not exist", request.user_id)

        container = await self.access.get_container(request.container_id)
        if not self.access.is_owner(container, acting_user.id):
            raise UserRoleError(f"User {acting_user.id} is not an owner", acting_user.id)

        role = ensure_valid_role(request.role)
        if accept:
            grant = await self.access.reconcile_role(container, requesting_user, role, acting_user)
            if grant.changed:
                message = "Request accepted."
            else:
                message = "Request accepted, the user already holds this role or a higher one."
        else:
            message = "Request rejected."

        await self.requests.remove(request_id)
        await self.unit_of_work.commit()
        logger.info(f"Request {request_id} answered by {acting_user.id}: {message}")

        await self.activity.create_event(
            acting_user.id,
            ActivityType.RESPOND_CONTAINER_REQUEST,
            container.id,
            {"request_id": request_id, "accepted": accept, "role": role.value},
        )

        outcome = AccessOutcome(container_id=container.id, message=message)
        if not skip_email:
            try:
                await self.notifier.send_request_response(
                    requesting_user, acting_user, container, role, accept
                )
            except NotificationError as e:
                raise NotificationError(e.message, outcome) from e
        return outcome
