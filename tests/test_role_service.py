"""
Tests for role lifecycle and role assignment.

Tests cover:
- Create with name uniqueness
- Delete with default-role protection and idempotent removal
- Idempotent grant and revoke
- Admin events only for applied changes
"""
import pytest

from orgroles.core.errors import BadRequestError, ConflictError, NotFoundError
from orgroles.features.audit.models import OperationType, ResourceType
from orgroles.features.permissions.capabilities import DEFAULT_ORG_ROLES
from orgroles.features.roles import service
from tests.utils import count_events


class TestCreateRole:

    async def test_defaults_are_seeded(self, db, acme):
        roles = await service.list_roles(db, acme.id)
        assert {r.name for r in roles} == DEFAULT_ORG_ROLES

    async def test_create_then_conflict(self, db, admin, acme):
        role = await service.create_role(db, acme, "billing", "Billing staff", admin)
        assert role.name == "billing"
        assert role.description == "Billing staff"
        assert role.organization_id == acme.id

        with pytest.raises(ConflictError) as exc_info:
            await service.create_role(db, acme, "billing", None, admin)
        assert exc_info.value.status_code == 409

    @pytest.mark.parametrize("name", ["", "Billing Team", "x" * 256])
    async def test_malformed_name(self, db, admin, acme, name):
        with pytest.raises(BadRequestError):
            await service.create_role(db, acme, name, None, admin)
        assert await count_events(db, resource_type=ResourceType.ORGANIZATION_ROLE) == 0

    async def test_same_name_in_other_organization(self, db, admin, acme, globex):
        await service.create_role(db, acme, "billing", None, admin)
        role = await service.create_role(db, globex, "billing", None, admin)
        assert role.organization_id == globex.id

    async def test_event_only_on_success(self, db, admin, acme):
        await service.create_role(db, acme, "billing", None, admin)
        with pytest.raises(ConflictError):
            await service.create_role(db, acme, "billing", None, admin)

        assert await count_events(
            db,
            resource_type=ResourceType.ORGANIZATION_ROLE,
            operation_type=OperationType.CREATE,
        ) == 1


class TestDeleteRole:

    @pytest.mark.parametrize("name", sorted(DEFAULT_ORG_ROLES))
    async def test_default_roles_cannot_be_deleted(self, db, admin, acme, name):
        with pytest.raises(BadRequestError) as exc_info:
            await service.delete_role(db, acme, name, admin)
        assert exc_info.value.detail == f"Default organization role {name} cannot be deleted."
        assert await service.get_role_by_name(db, acme.id, name) is not None
        assert await count_events(db, operation_type=OperationType.DELETE) == 0

    async def test_delete_is_idempotent(self, db, admin, acme):
        await service.create_role(db, acme, "billing", None, admin)

        await service.delete_role(db, acme, "billing", admin)
        assert await service.get_role_by_name(db, acme.id, "billing") is None

        await service.delete_role(db, acme, "billing", admin)
        assert await count_events(
            db,
            resource_type=ResourceType.ORGANIZATION_ROLE,
            operation_type=OperationType.DELETE,
        ) == 2

    async def test_delete_drops_assignments(self, db, admin, alice, acme):
        await service.create_role(db, acme, "billing", None, admin)
        await service.grant_role(db, acme, alice, "billing", admin)

        await service.delete_role(db, acme, "billing", admin)
        await service.create_role(db, acme, "billing", None, admin)

        assert await service.list_user_roles(db, acme.id, alice.id) == []

    async def test_delete_leaves_other_organizations(self, db, admin, acme, globex):
        await service.create_role(db, acme, "billing", None, admin)
        await service.create_role(db, globex, "billing", None, admin)

        await service.delete_role(db, acme, "billing", admin)
        assert await service.get_role_by_name(db, globex.id, "billing") is not None


class TestUpdateRole:

    async def test_description_edit(self, db, admin, acme):
        role = await service.create_role(db, acme, "billing", "old", admin)
        await service.update_role(db, acme, role, "new", admin)

        assert (await service.get_role_by_name(db, acme.id, "billing")).description == "new"
        assert await count_events(db, operation_type=OperationType.UPDATE) == 1


class TestGrantRevoke:

    async def test_grant_is_idempotent(self, db, admin, alice, acme):
        await service.create_role(db, acme, "billing", None, admin)

        assert await service.grant_role(db, acme, alice, "billing", admin) is True
        assert await service.grant_role(db, acme, alice, "billing", admin) is False

        roles = await service.list_user_roles(db, acme.id, alice.id)
        assert [r.name for r in roles] == ["billing"]
        assert await count_events(
            db,
            resource_type=ResourceType.ORGANIZATION_ROLE_MAPPING,
            operation_type=OperationType.CREATE,
        ) == 1

    async def test_revoke_is_idempotent(self, db, admin, alice, acme):
        await service.create_role(db, acme, "billing", None, admin)
        await service.grant_role(db, acme, alice, "billing", admin)

        assert await service.revoke_role(db, acme, alice, "billing", admin) is True
        assert await service.revoke_role(db, acme, alice, "billing", admin) is False

        assert await service.list_user_roles(db, acme.id, alice.id) == []
        assert await count_events(
            db,
            resource_type=ResourceType.ORGANIZATION_ROLE_MAPPING,
            operation_type=OperationType.DELETE,
        ) == 1

    async def test_revoke_never_granted(self, db, admin, alice, acme):
        assert await service.revoke_role(db, acme, alice, "member", admin) is False
        assert await count_events(db, resource_type=ResourceType.ORGANIZATION_ROLE_MAPPING) == 0

    async def test_unknown_role(self, db, admin, alice, acme):
        with pytest.raises(NotFoundError) as exc_info:
            await service.grant_role(db, acme, alice, "ghost", admin)
        assert exc_info.value.detail == "Organization acme doesn't contain role ghost"

        with pytest.raises(NotFoundError):
            await service.revoke_role(db, acme, alice, "ghost", admin)

    async def test_role_users(self, db, admin, alice, acme):
        role = await service.get_role_by_name(db, acme.id, "admin")
        await service.grant_role(db, acme, alice, "admin", admin)

        users = await service.list_role_users(db, role)
        assert {u.id for u in users} == {admin.id, alice.id}
        assert await service.has_role(db, role, alice.id)
