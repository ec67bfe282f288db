"""
User feature routes: profile, organization memberships, organization role
grants, and the active organization.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.bulk import HTTP_207_MULTI_STATUS, BulkResponseItem, multi_status_response, run_bulk
from orgroles.core.database.engine import get_db
from orgroles.core.errors import NotAuthorizedError, NotFoundError
from orgroles.features.organizations.schemas import OrganizationPublic
from orgroles.features.organizations.service import get_organization, is_member, list_user_organizations
from orgroles.features.permissions.dependencies import build_auth_context, check_role_mapping_access
from orgroles.features.roles.schemas import OrganizationRoleRepresentation, OrganizationRoleResponse
from orgroles.features.roles.service import grant_role, list_user_roles, revoke_role
from orgroles.features.users.active_organization import get_active_organization, switch_active_organization
from orgroles.features.users.dependencies import get_current_user, get_token_claims
from orgroles.features.users.models import User
from orgroles.features.users.schemas import SwitchOrganization, TokenResponse, UserResponse
from orgroles.features.users.service import get_user_by_id
from orgroles.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return user


# ============================================================================
# Active organization
# ============================================================================

@router.get("/active-organization", response_model=OrganizationPublic)
async def get_active_organization_endpoint(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get the current user's active organization; 404 if none, 401 if stale."""
    return await get_active_organization(db, user)


@router.put("/switch-organization", response_model=TokenResponse)
async def switch_organization(
    body: SwitchOrganization,
    user: Annotated[User, Depends(get_current_user)],
    claims: Annotated[dict, Depends(get_token_claims)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Switch the active organization and return fresh credentials for it."""
    tokens = await switch_active_organization(db, user, body.id, claims)
    await db.commit()
    return tokens


# ============================================================================
# Organization memberships and roles
# ============================================================================

@router.get("/{user_id}/orgs", response_model=list[OrganizationPublic])
async def list_user_orgs(
    user_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List a user's organizations that the caller may view."""
    log.debug("Get org memberships for %s", user_id)
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} doesn't exist")

    visible = []
    for organization in await list_user_organizations(db, user.id):
        context = await build_auth_context(db, current_user, organization)
        if context.can_view_organization():
            visible.append(organization)
    return visible


@router.get("/{user_id}/orgs/{organization_id}/roles", response_model=list[OrganizationRoleResponse])
async def list_user_org_roles(
    user_id: str,
    organization_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List the roles a user holds in one organization."""
    log.debug("Get org roles for %s %s", user_id, organization_id)
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} doesn't exist")
    organization = await get_organization(db, organization_id)
    if organization is None:
        raise NotFoundError(f"Organization {organization_id} doesn't exist")

    context = await build_auth_context(db, current_user, organization)
    if not context.can_view_roles():
        raise NotAuthorizedError("Insufficient permissions")
    if not await is_member(db, organization.id, user.id):
        raise NotFoundError("User is not a member of the organization")

    return await list_user_roles(db, organization.id, user.id)


@router.put(
    "/{user_id}/orgs/{organization_id}/roles",
    response_model=list[BulkResponseItem[OrganizationRoleRepresentation]],
    status_code=HTTP_207_MULTI_STATUS,
)
async def grant_user_org_roles(
    user_id: str,
    organization_id: str,
    roles: list[OrganizationRoleRepresentation],
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Grant many roles to a member; each role succeeds or fails on its own."""
    log.debug("Grant user organization roles for %s %s", user_id, organization_id)
    user, organization, context = await check_role_mapping_access(db, current_user, user_id, organization_id)

    async def grant_one(rep: OrganizationRoleRepresentation):
        await grant_role(db, organization, user, rep.name, context.actor)

    items = await run_bulk(roles, grant_one, success_status=status.HTTP_201_CREATED, db=db)
    await db.commit()
    return multi_status_response(request, items)


@router.patch(
    "/{user_id}/orgs/{organization_id}/roles",
    response_model=list[BulkResponseItem[OrganizationRoleRepresentation]],
    status_code=HTTP_207_MULTI_STATUS,
)
async def revoke_user_org_roles(
    user_id: str,
    organization_id: str,
    roles: list[OrganizationRoleRepresentation],
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Revoke many roles from a member; each role succeeds or fails on its own."""
    log.debug("Revoke user organization roles for %s %s", user_id, organization_id)
    user, organization, context = await check_role_mapping_access(db, current_user, user_id, organization_id)

    async def revoke_one(rep: OrganizationRoleRepresentation):
        await revoke_role(db, organization, user, rep.name, context.actor)

    items = await run_bulk(roles, revoke_one, success_status=status.HTTP_204_NO_CONTENT, db=db)
    await db.commit()
    return multi_status_response(request, items)
