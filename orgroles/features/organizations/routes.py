"""
Organization feature routes.

Organization lifecycle is owned by the host platform; these endpoints cover
creating a tenant with its default roles and managing its membership.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.database.engine import get_db
from orgroles.core.errors import ConflictError, NotAuthorizedError, NotFoundError
from orgroles.features.users.models import User
from orgroles.features.users.dependencies import get_current_admin_user
from orgroles.features.users.service import get_user_by_id
from orgroles.features.organizations.models import Organization
from orgroles.features.organizations.schemas import (
    OrganizationCreate,
    OrganizationResponse,
    AddUserToOrganization,
)
from orgroles.features.organizations import service
from orgroles.features.permissions.capabilities import AuthContext
from orgroles.features.permissions.dependencies import get_organization_context
from orgroles.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["organizations"])


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    org_data: OrganizationCreate,
    admin: Annotated[User, Depends(get_current_admin_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create an organization with its default roles (global admins only)."""
    if await service.get_organization_by_name(db, org_data.name) is not None:
        raise ConflictError(f"Organization {org_data.name} already exists")

    organization = await service.create_organization(db, org_data.name, org_data.display_name, admin)
    await db.commit()
    await db.refresh(organization)

    response = OrganizationResponse.model_validate(organization)
    response.member_count = await service.count_members(db, organization.id)
    return response


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    context: Annotated[AuthContext, Depends(get_organization_context)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get an organization."""
    if not context.can_view_organization():
        raise NotAuthorizedError("Insufficient permissions")
    response = OrganizationResponse.model_validate(context.organization)
    response.member_count = await service.count_members(db, context.organization.id)
    return response


def _require_member_manager(context: AuthContext) -> Organization:
    if not context.can_manage_members():
        log.warning("User %s denied member management in org %s", context.actor.id, context.organization.name)
        raise NotAuthorizedError("Insufficient permissions")
    return context.organization


@router.post("/{organization_id}/members", response_model=dict, status_code=status.HTTP_201_CREATED)
async def add_user_to_organization(
    add_data: AddUserToOrganization,
    context: Annotated[AuthContext, Depends(get_organization_context)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Add a user to an organization."""
    organization = _require_member_manager(context)

    user = await get_user_by_id(db, add_data.user_id)
    if user is None:
        raise NotFoundError(f"User {add_data.user_id} doesn't exist")

    if not await service.add_member(db, organization, user):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already a member of this organization"
        )
    await db.commit()

    return {
        "message": "User added to organization successfully",
        "user_id": user.id,
        "organization_id": organization.id,
    }


@router.delete("/{organization_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_from_organization(
    user_id: str,
    context: Annotated[AuthContext, Depends(get_organization_context)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Remove a user from an organization, dropping their roles there."""
    organization = _require_member_manager(context)

    user = await get_user_by_id(db, user_id)
    if user is None or not await service.remove_member(db, organization, user):
        raise NotFoundError("User is not a member of this organization")
    await db.commit()
    return None
