"""
Authorization guard.

Implements:
- Building an AuthContext for the acting user and a target organization
- The manage-roles / view-roles decisions
- The precondition gate for role assignment (user exists, organization
  exists, user is a member) that runs before the permission check
- FastAPI dependencies for route protection
"""
from typing import Annotated, Optional
from fastapi import Depends
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.database.engine import get_db
from orgroles.core.errors import BadRequestError, NotAuthorizedError, NotFoundError
from orgroles.features.organizations.dependencies import get_organization_by_id
from orgroles.features.organizations.models import Organization
from orgroles.features.organizations.service import get_organization, is_member
from orgroles.features.permissions.capabilities import (
    AuthContext,
    capabilities_for_roles,
    global_capabilities_for,
)
from orgroles.features.roles.models import OrganizationRole, organization_user_roles
from orgroles.features.users.dependencies import get_current_user
from orgroles.features.users.models import User
from orgroles.features.users.service import get_user_by_id
from orgroles.utils import get_logger


log = get_logger(__name__)


async def get_held_role_names(db: AsyncSession, organization_id: str, user_id: str) -> list[str]:
    """Names of the roles the user holds in the organization."""
    result = await db.execute(
        select(OrganizationRole.name)
        .join(organization_user_roles, organization_user_roles.c.role_id == OrganizationRole.id)
        .where(
            and_(
                organization_user_roles.c.user_id == user_id,
                OrganizationRole.organization_id == organization_id
            )
        )
    )
    return list(result.scalars().all())


async def build_auth_context(
    db: AsyncSession,
    actor: User,
    organization: Optional[Organization] = None
) -> AuthContext:
    """
    Collect the actor's global capabilities and, when an organization is
    given, the capabilities delegated to the actor inside it.

    Scoped capabilities only count while the actor is a member.
    """
    organization_capabilities = frozenset()
    if organization is not None and await is_member(db, organization.id, actor.id):
        held = await get_held_role_names(db, organization.id, actor.id)
        organization_capabilities = capabilities_for_roles(held)

    return AuthContext(
        actor=actor,
        global_capabilities=global_capabilities_for(actor),
        organization=organization,
        organization_capabilities=organization_capabilities,
    )


def require_manage_roles(context: AuthContext) -> None:
    """
    Raises:
        NotAuthorizedError: the actor may not manage roles in the context organization
    """
    if not context.can_manage_roles():
        organization_name = context.organization.name if context.organization else None
        log.warning("User %s denied role management in org %s", context.actor.id, organization_name)
        raise NotAuthorizedError(
            f"User {context.actor.id} doesn't have permission to manage roles in org {organization_name}"
        )


def require_view_roles(context: AuthContext) -> None:
    if not context.can_view_roles():
        log.warning("User %s denied role view in org %s", context.actor.id,
                    context.organization.name if context.organization else None)
        raise NotAuthorizedError("Insufficient permissions")


async def check_role_mapping_access(
    db: AsyncSession,
    actor: User,
    user_id: str,
    organization_id: str,
) -> tuple[User, Organization, AuthContext]:
    """
    Gate for granting or revoking roles of a user in an organization.

    Checks, in order: the target user exists, the organization exists, the
    user is a member, and only then whether the actor may manage roles.

    Returns:
        (target user, organization, actor context)

    Raises:
        NotFoundError: user or organization does not exist
        BadRequestError: user is not a member of the organization
        NotAuthorizedError: actor may not manage roles in the organization
    """
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} doesn't exist")

    organization = await get_organization(db, organization_id)
    if organization is None:
        raise NotFoundError(f"Organization {organization_id} doesn't exist")

    if not await is_member(db, organization.id, user.id):
        raise BadRequestError(
            f"User {user_id} must be a member of {organization.name} to be granted roles."
        )

    context = await build_auth_context(db, actor, organization)
    if not context.can_manage_roles():
        log.warning("User %s denied role mapping for %s in org %s", actor.id, user_id, organization.name)
        raise NotAuthorizedError("Insufficient permissions")

    return user, organization, context


# ============================================================================
# FastAPI Dependencies
# ============================================================================

async def get_organization_context(
    organization: Annotated[Organization, Depends(get_organization_by_id)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthContext:
    """AuthContext for the current user and the organization in the path."""
    return await build_auth_context(db, current_user, organization)


async def require_role_manager(
    context: Annotated[AuthContext, Depends(get_organization_context)],
) -> AuthContext:
    """
    Dependency requiring permission to manage roles in the path organization.

    Usage:
        @router.post("/{organization_id}/roles")
        async def create_role(context: AuthContext = Depends(require_role_manager)):
            ...
    """
    require_manage_roles(context)
    return context


async def require_role_viewer(
    context: Annotated[AuthContext, Depends(get_organization_context)],
) -> AuthContext:
    """Dependency requiring permission to view roles in the path organization."""
    require_view_roles(context)
    return context
