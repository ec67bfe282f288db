"""
Organization role routes.

Mounted under /organizations:
- GET    /{organization_id}/roles                      list roles
- POST   /{organization_id}/roles                      create one role
- PUT    /{organization_id}/roles                      bulk create (207)
- PATCH  /{organization_id}/roles                      bulk delete (207)
- GET    /{organization_id}/roles/{name}               get one role
- PUT    /{organization_id}/roles/{name}               update description
- DELETE /{organization_id}/roles/{name}               delete one role
- GET    /{organization_id}/roles/{name}/users         users holding the role
- GET    /{organization_id}/roles/{name}/users/{uid}   204 if held
- PUT    /{organization_id}/roles/{name}/users/{uid}   grant
- DELETE /{organization_id}/roles/{name}/users/{uid}   revoke
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.bulk import HTTP_207_MULTI_STATUS, BulkResponseItem, multi_status_response, run_bulk
from orgroles.core.database.engine import get_db
from orgroles.core.errors import NotFoundError
from orgroles.features.permissions.capabilities import AuthContext
from orgroles.features.permissions.dependencies import (
    check_role_mapping_access,
    require_role_manager,
    require_role_viewer,
)
from orgroles.features.roles import service
from orgroles.features.roles.models import OrganizationRole
from orgroles.features.roles.schemas import (
    OrganizationRoleCreate,
    OrganizationRoleRepresentation,
    OrganizationRoleResponse,
    OrganizationRoleDetail,
    RoleUpdate,
)
from orgroles.features.users.dependencies import get_current_user
from orgroles.features.users.models import User
from orgroles.features.users.schemas import UserPublic
from orgroles.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["roles"])


async def _get_role_or_404(db: AsyncSession, context: AuthContext, name: str) -> OrganizationRole:
    role = await service.get_role_by_name(db, context.organization.id, name)
    if role is None:
        raise NotFoundError(f"Organization {context.organization.name} doesn't contain role {name}")
    return role


@router.get("/{organization_id}/roles", response_model=list[OrganizationRoleResponse])
async def list_roles(
    context: Annotated[AuthContext, Depends(require_role_viewer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List the roles of an organization."""
    log.debug("Get roles for org %s", context.organization.id)
    return await service.list_roles(db, context.organization.id)


@router.post("/{organization_id}/roles", status_code=status.HTTP_201_CREATED)
async def create_role(
    representation: OrganizationRoleCreate,
    request: Request,
    context: Annotated[AuthContext, Depends(require_role_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a role; 409 if the name is taken."""
    role = await service.create_role(
        db, context.organization, representation.name, representation.description, context.actor
    )
    await db.commit()
    return Response(
        status_code=status.HTTP_201_CREATED,
        headers={"Location": f"{str(request.url.replace(query='')).rstrip('/')}/{role.name}"},
    )


@router.put(
    "/{organization_id}/roles",
    response_model=list[BulkResponseItem[OrganizationRoleRepresentation]],
    status_code=HTTP_207_MULTI_STATUS,
)
async def create_roles(
    representations: list[OrganizationRoleRepresentation],
    request: Request,
    context: Annotated[AuthContext, Depends(require_role_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create many roles; each item succeeds or fails on its own."""
    async def create_one(rep: OrganizationRoleRepresentation):
        await service.create_role(db, context.organization, rep.name, rep.description, context.actor)

    items = await run_bulk(representations, create_one, success_status=status.HTTP_201_CREATED, db=db)
    await db.commit()
    return multi_status_response(request, items)


@router.patch(
    "/{organization_id}/roles",
    response_model=list[BulkResponseItem[OrganizationRoleRepresentation]],
    status_code=HTTP_207_MULTI_STATUS,
)
async def delete_roles(
    representations: list[OrganizationRoleRepresentation],
    request: Request,
    context: Annotated[AuthContext, Depends(require_role_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete many roles by name; absent roles count as deleted."""
    async def delete_one(rep: OrganizationRoleRepresentation):
        await service.delete_role(db, context.organization, rep.name, context.actor)

    items = await run_bulk(representations, delete_one, success_status=status.HTTP_204_NO_CONTENT, db=db)
    await db.commit()
    return multi_status_response(request, items)


@router.get("/{organization_id}/roles/{name}", response_model=OrganizationRoleDetail)
async def get_role(
    name: str,
    context: Annotated[AuthContext, Depends(require_role_viewer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a role by name."""
    return await _get_role_or_404(db, context, name)


@router.put("/{organization_id}/roles/{name}", response_model=OrganizationRoleResponse)
async def update_role(
    name: str,
    role_update: RoleUpdate,
    context: Annotated[AuthContext, Depends(require_role_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update a role's description."""
    role = await _get_role_or_404(db, context, name)
    role = await service.update_role(db, context.organization, role, role_update.description, context.actor)
    await db.commit()
    return role


@router.delete("/{organization_id}/roles/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    name: str,
    context: Annotated[AuthContext, Depends(require_role_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a role; default roles are refused with 400."""
    await _get_role_or_404(db, context, name)
    await service.delete_role(db, context.organization, name, context.actor)
    await db.commit()
    return None


# ============================================================================
# Role users
# ============================================================================

@router.get("/{organization_id}/roles/{name}/users", response_model=list[UserPublic])
async def list_role_users(
    name: str,
    context: Annotated[AuthContext, Depends(require_role_viewer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List the users holding a role."""
    role = await _get_role_or_404(db, context, name)
    return await service.list_role_users(db, role)


@router.get("/{organization_id}/roles/{name}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def check_user_role(
    name: str,
    user_id: str,
    context: Annotated[AuthContext, Depends(require_role_viewer)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """204 if the user holds the role, 404 otherwise."""
    role = await _get_role_or_404(db, context, name)
    if not await service.has_role(db, role, user_id):
        raise NotFoundError(f"User {user_id} doesn't have role {name}")
    return None


@router.put("/{organization_id}/roles/{name}/users/{user_id}", status_code=status.HTTP_201_CREATED)
async def grant_user_role(
    organization_id: str,
    name: str,
    user_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Grant a role to a member; granting a held role is a no-op."""
    user, organization, context = await check_role_mapping_access(db, current_user, user_id, organization_id)
    await service.grant_role(db, organization, user, name, context.actor)
    await db.commit()
    return Response(status_code=status.HTTP_201_CREATED)


@router.delete("/{organization_id}/roles/{name}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_user_role(
    organization_id: str,
    name: str,
    user_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Revoke a role from a member; revoking an unheld role is a no-op."""
    user, organization, context = await check_role_mapping_access(db, current_user, user_id, organization_id)
    await service.revoke_role(db, organization, user, name, context.actor)
    await db.commit()
    return None
