"""
Tests for the authorization guard against stored memberships and roles.

Tests cover:
- Scoped capabilities derived from held roles
- Two-tier manage-roles decision across organizations
- Precondition gate order for role assignment
"""
import pytest

from orgroles.core.errors import BadRequestError, NotAuthorizedError, NotFoundError
from orgroles.features.organizations.service import remove_member
from orgroles.features.permissions.capabilities import Capability
from orgroles.features.permissions.dependencies import (
    build_auth_context,
    check_role_mapping_access,
    get_held_role_names,
    require_manage_roles,
)
from orgroles.features.roles.service import grant_role
from tests.utils import make_user



class TestAuthContext:

    async def test_creator_holds_admin(self, db, admin, acme):
        assert await get_held_role_names(db, acme.id, admin.id) == ["admin"]

    async def test_scoped_delegate_manages_only_its_organization(self, db, delegate, acme, globex):
        in_acme = await build_auth_context(db, delegate, acme)
        in_globex = await build_auth_context(db, delegate, globex)

        assert in_acme.can_manage_roles()
        require_manage_roles(in_acme)

        assert not in_globex.can_manage_roles()
        with pytest.raises(NotAuthorizedError) as exc_info:
            require_manage_roles(in_globex)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == f"User {delegate.id} doesn't have permission to manage roles in org globex"

    async def test_global_admin_manages_every_organization(self, db, admin, acme, globex):
        outsider_org_admin = await make_user(db, "ops", is_admin=True)
        for organization in (acme, globex):
            context = await build_auth_context(db, outsider_org_admin, organization)
            assert context.can_manage_roles()
            assert context.organization_capabilities == frozenset()

    async def test_plain_member_cannot_manage(self, db, alice, acme):
        context = await build_auth_context(db, alice, acme)
        assert context.organization_capabilities == frozenset()
        assert not context.can_manage_roles()

    async def test_member_role_grants_view(self, db, admin, alice, acme):
        await grant_role(db, acme, alice, "member", admin)
        context = await build_auth_context(db, alice, acme)
        assert Capability.VIEW_ROLES in context.organization_capabilities
        assert context.can_view_roles()
        assert not context.can_manage_roles()

    async def test_capabilities_lapse_with_membership(self, db, delegate, acme):
        await remove_member(db, acme, delegate)
        context = await build_auth_context(db, delegate, acme)
        assert not context.can_manage_roles()


class TestRoleMappingGate:

    async def test_passes_for_member_and_authorized_actor(self, db, admin, alice, acme):
        user, organization, context = await check_role_mapping_access(db, admin, alice.id, acme.id)
        assert user is alice
        assert organization.id == acme.id
        assert context.actor is admin

    async def test_missing_user(self, db, admin, acme):
        with pytest.raises(NotFoundError) as exc_info:
            await check_role_mapping_access(db, admin, "nobody", acme.id)
        assert exc_info.value.detail == "User nobody doesn't exist"

    async def test_missing_organization(self, db, admin, alice):
        with pytest.raises(NotFoundError) as exc_info:
            await check_role_mapping_access(db, admin, alice.id, "no-org")
        assert exc_info.value.detail == "Organization no-org doesn't exist"

    async def test_non_member_is_bad_request(self, db, admin, outsider, acme):
        with pytest.raises(BadRequestError) as exc_info:
            await check_role_mapping_access(db, admin, outsider.id, acme.id)
        assert exc_info.value.detail == f"User {outsider.id} must be a member of acme to be granted roles."

    async def test_membership_checked_before_permission(self, db, alice, outsider, acme):
        # alice cannot manage roles, but the membership failure wins
        with pytest.raises(BadRequestError):
            await check_role_mapping_access(db, alice, outsider.id, acme.id)

    async def test_unauthorized_actor(self, db, alice, acme):
        with pytest.raises(NotAuthorizedError) as exc_info:
            await check_role_mapping_access(db, alice, alice.id, acme.id)
        assert exc_info.value.detail == "Insufficient permissions"

    async def test_scoped_delegate_denied_elsewhere(self, db, delegate, globex):
        with pytest.raises(NotAuthorizedError):
            await check_role_mapping_access(db, delegate, delegate.id, globex.id)
