"""Tests for the access control service against the SQL repositories."""

import pytest

from accessgate.config import settings
from accessgate.core.exceptions import (
    ConflictingRecordError,
    InvariantViolationError,
    RecordNotFoundError,
    UserRoleError,
    ValidationError,
)
from accessgate.core.identifiers import ContainerType
from accessgate.core.roles import Role
from accessgate.models.nosql.activity import ActivityType
from accessgate.models.sql.invitation import ContainerInvitation
from accessgate.services.invitations import invitation_expiry


@pytest.mark.asyncio
class TestContainerLifecycle:
    async def test_create_container(self, access_service, owner, activity_collection):
        container = await access_service.create_container(owner, ContainerType.LIBRARY, title="Lib")

        assert container.id.startswith("MPLibrary:")
        assert container.owners == {owner.id}
        assert container.writers == set()
        assert not container.is_public
        event = activity_collection.insert_one.await_args.args[0]
        assert event["event_type"] == ActivityType.CONTAINER_CREATE.value

    async def test_create_container_with_existing_id(self, access_service, owner, make_container):
        container = await make_container(owner)

        with pytest.raises(ConflictingRecordError):
            await access_service.create_container(owner, ContainerType.PROJECT, container.id)

    async def test_create_container_id_type_mismatch(self, access_service, owner):
        with pytest.raises(ValidationError):
            await access_service.create_container(owner, ContainerType.LIBRARY, "MPProject:abc")

    async def test_get_container_invalid_and_missing(self, access_service):
        with pytest.raises(ValidationError, match="Invalid container id."):
            await access_service.get_container("nope")
        with pytest.raises(RecordNotFoundError):
            await access_service.get_container("MPProject:missing")

    async def test_delete_container_owner_only(self, access_service, owner, make_user, make_container):
        writer = await make_user("writer@x.com")
        container = await make_container(owner, members={writer: Role.WRITER})

        with pytest.raises(UserRoleError):
            await access_service.delete_container(container.id, writer)

        await access_service.delete_container(container.id, owner)
        with pytest.raises(RecordNotFoundError):
            await access_service.get_container(container.id)


@pytest.mark.asyncio
class TestRoleQueries:
    async def test_get_user_role(self, access_service, owner, make_user, make_container):
        writer = await make_user("writer@x.com")
        viewer = await make_user("viewer@x.com")
        stranger = await make_user("stranger@x.com")
        container = await make_container(owner, members={writer: Role.WRITER, viewer: Role.VIEWER})

        assert access_service.get_user_role(container, owner.id) == Role.OWNER
        assert access_service.get_user_role(container, writer.id) == Role.WRITER
        assert access_service.get_user_role(container, viewer.id) == Role.VIEWER
        assert access_service.get_user_role(container, stranger.id) is None
        assert access_service.is_owner(container, owner.id)
        assert not access_service.is_owner(container, writer.id)
        assert access_service.is_container_user(container, viewer.id)
        assert not access_service.is_container_user(container, stranger.id)

    async def test_check_access(self, access_service, owner, make_user, make_container):
        viewer = await make_user("viewer@x.com")
        stranger = await make_user("stranger@x.com")
        container = await make_container(owner, members={viewer: Role.VIEWER})

        assert await access_service.check_user_container_access(viewer.id, container.id)
        assert not await access_service.check_user_container_access(stranger.id, container.id)
        assert await access_service.check_if_owner_or_writer(owner.id, container.id)
        assert not await access_service.check_if_owner_or_writer(viewer.id, container.id)

    async def test_public_container_is_readable(self, access_service, owner, make_user, make_container):
        stranger = await make_user("stranger@x.com")
        container = await make_container(owner)

        await access_service.manage_user_role(owner, container.id, managed_user_id="*", new_role="Viewer")

        assert container.is_public
        assert await access_service.check_user_container_access(stranger.id, container.id)
        assert access_service.get_user_role(container, stranger.id) is None


@pytest.mark.asyncio
class TestLastOwnerInvariant:
    async def test_sole_owner_cannot_step_down(self, access_service, owner, make_container):
        container = await make_container(owner)

        for role in (None, Role.WRITER, Role.VIEWER):
            with pytest.raises(InvariantViolationError, match="only owner"):
                await access_service.update_container_user(container.id, role, owner)
        assert container.owners == {owner.id}

    async def test_one_of_two_owners_can_step_down(self, access_service, owner, make_user, make_container):
        second = await make_user("second@x.com")
        container = await make_container(owner, members={second: Role.OWNER})

        await access_service.update_container_user(container.id, Role.WRITER, owner)

        assert container.owners == {second.id}
        assert container.writers == {owner.id}

    async def test_revoking_removes_pending_invitations(
        self, access_service, owner, make_user, make_container, db_session
    ):
        viewer = await make_user("viewer@x.com")
        container = await make_container(owner, members={viewer: Role.VIEWER})
        db_session.add(
            ContainerInvitation(
                id="MPContainerInvitation:pending",
                inviting_user_id=owner.id,
                invited_user_email=viewer.email,
                container_id=container.id,
                role=Role.WRITER.value,
                expires_at=invitation_expiry(),
            )
        )
        await db_session.commit()

        await access_service.update_container_user(container.id, "", viewer)

        assert not access_service.is_container_user(container, viewer.id)
        assert await access_service.container_invitations.get_by_id("MPContainerInvitation:pending") is None


@pytest.mark.asyncio
class TestAddContainerUser:
    async def test_add_new_user_notifies(self, access_service, owner, make_user, make_container, notifier):
        second_owner = await make_user("second@x.com")
        added = await make_user("added@x.com")
        container = await make_container(owner, members={second_owner: Role.OWNER})

        assert await access_service.add_container_user(container.id, "Writer", added.id, owner)

        assert container.writers == {added.id}
        notifier.send_container_invitation_acceptance.assert_awaited_once()
        # Only the owner who did not add the user hears about it
        notifier.send_owner_notification_of_collaborator.assert_awaited_once()
        assert notifier.send_owner_notification_of_collaborator.await_args.args[0] is second_owner

    async def test_add_same_role_is_noop(self, access_service, owner, make_user, make_container, notifier):
        writer = await make_user("writer@x.com")
        container = await make_container(owner, members={writer: Role.WRITER})

        assert await access_service.add_container_user(container.id, Role.WRITER, writer.id) is False
        notifier.send_container_invitation_acceptance.assert_not_awaited()

    async def test_add_with_different_role_updates(self, access_service, owner, make_user, make_container):
        writer = await make_user("writer@x.com")
        container = await make_container(owner, members={writer: Role.WRITER})

        assert await access_service.add_container_user(container.id, Role.VIEWER, writer.id, skip_email=True)
        assert container.viewers == {writer.id}
        assert container.writers == set()

    async def test_add_invalid_input(self, access_service, owner, make_container):
        container = await make_container(owner)

        with pytest.raises(ValidationError):
            await access_service.add_container_user(container.id, "Admin", owner.id)
        with pytest.raises(ValidationError):
            await access_service.add_container_user(container.id, "Viewer", "not-a-uuid")


@pytest.mark.asyncio
class TestManageUserRole:
    async def test_owner_changes_member_role(self, access_service, owner, make_user, make_container):
        writer = await make_user("writer@x.com")
        container = await make_container(owner, members={writer: Role.WRITER})

        await access_service.manage_user_role(
            owner, container.id, managed_user_id=str(writer.id), new_role="Viewer"
        )
        assert access_service.get_user_role(container, writer.id) == Role.VIEWER

    async def test_non_owner_rejected(self, access_service, owner, make_user, make_container):
        writer = await make_user("writer@x.com")
        container = await make_container(owner, members={writer: Role.WRITER})

        with pytest.raises(UserRoleError):
            await access_service.manage_user_role(
                writer, container.id, managed_user_id=str(owner.id), new_role="Viewer"
            )

    async def test_server_secret_allows_non_owner(self, access_service, owner, make_user, make_container):
        writer = await make_user("writer@x.com")
        outsider = await make_user("outsider@x.com")
        container = await make_container(owner, members={writer: Role.WRITER})

        await access_service.manage_user_role(
            writer,
            container.id,
            managed_user_id=str(outsider.id),
            new_role="Writer",
            secret=settings.SERVER_SECRET,
        )
        assert access_service.get_user_role(container, outsider.id) == Role.WRITER

    async def test_managed_user_must_be_member(self, access_service, owner, make_user, make_container):
        outsider = await make_user("outsider@x.com")
        container = await make_container(owner)

        with pytest.raises(ValidationError, match="not in container"):
            await access_service.manage_user_role(
                owner, container.id, managed_user_id=str(outsider.id), new_role="Writer"
            )

    async def test_public_user_only_viewer(self, access_service, owner, make_container):
        container = await make_container(owner)

        with pytest.raises(ValidationError):
            await access_service.manage_user_role(owner, container.id, managed_user_id="*", new_role="Writer")

        await access_service.manage_user_role(owner, container.id, managed_user_id="*", new_role="Viewer")
        assert container.is_public
        await access_service.manage_user_role(owner, container.id, managed_user_id="*", new_role=None)
        assert not container.is_public

    async def test_resolve_by_connect_id(self, access_service, owner, make_user, make_container, db_session):
        writer = await make_user("writer@x.com")
        writer.connect_user_id = "connect-123"
        container = await make_container(owner, members={writer: Role.WRITER})

        await access_service.manage_user_role(
            owner, container.id, managed_connect_id="connect-123", new_role=None
        )
        assert not access_service.is_container_user(container, writer.id)


@pytest.mark.asyncio
class TestReconcileRole:
    async def test_messages(self, access_service, owner, make_user, make_container):
        viewer = await make_user("viewer@x.com")
        newcomer = await make_user("new@x.com")
        container = await make_container(owner, title="Thesis", members={viewer: Role.VIEWER})

        grant = await access_service.reconcile_role(container, newcomer, Role.WRITER)
        assert grant.added
        assert grant.message == 'You have been added to project "Thesis".'

        grant = await access_service.reconcile_role(container, viewer, Role.WRITER)
        assert grant.updated
        assert grant.message == "Your role was updated successfully."

        grant = await access_service.reconcile_role(container, viewer, Role.WRITER)
        assert not grant.changed
        assert grant.message == "You already have this role."

        grant = await access_service.reconcile_role(container, owner, Role.VIEWER)
        assert not grant.changed
        assert grant.message == "Your current role in the project is already of higher privilege."
        assert access_service.get_user_role(container, owner.id) == Role.OWNER

    async def test_untitled_container_message(self, access_service, owner, make_user, make_container):
        newcomer = await make_user("new@x.com")
        container = await make_container(owner, title=None, container_type=ContainerType.LIBRARY)

        grant = await access_service.reconcile_role(container, newcomer, Role.VIEWER)
        assert grant.message == "You have been added to a library."
