"""
Role lifecycle and role assignment.

Every function works on one role (or one role of one user) so the bulk
routes can run them item by item. Admin events are recorded only when state
actually changes.
"""
from typing import Optional
from sqlalchemy import select, delete, insert, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.errors import BadRequestError, ConflictError, NotFoundError
from orgroles.features.audit.dependencies import record_admin_event
from orgroles.features.audit.models import OperationType, ResourceType
from orgroles.features.organizations.models import Organization
from orgroles.features.permissions.capabilities import DEFAULT_ORG_ROLES
from orgroles.features.roles.models import OrganizationRole, organization_user_roles
from orgroles.features.roles.schemas import ROLE_NAME_RULE, OrganizationRoleResponse, is_valid_role_name
from orgroles.features.users.models import User
from orgroles.utils import get_logger


log = get_logger(__name__)


def role_path(organization: Organization, role_name: str) -> str:
    return f"organizations/{organization.id}/roles/{role_name}"


def role_mapping_path(organization: Organization, user: User, role_name: str) -> str:
    return f"users/{user.id}/orgs/{organization.id}/roles/{role_name}"


def is_default_role(role_name: str) -> bool:
    return role_name in DEFAULT_ORG_ROLES


# ============================================================================
# Queries
# ============================================================================

async def get_role_by_name(db: AsyncSession, organization_id: str, name: str) -> Optional[OrganizationRole]:
    result = await db.execute(
        select(OrganizationRole).where(
            and_(
                OrganizationRole.organization_id == organization_id,
                OrganizationRole.name == name
            )
        )
    )
    return result.scalar_one_or_none()


async def list_roles(db: AsyncSession, organization_id: str) -> list[OrganizationRole]:
    result = await db.execute(
        select(OrganizationRole)
        .where(OrganizationRole.organization_id == organization_id)
        .order_by(OrganizationRole.name)
    )
    return list(result.scalars().all())


async def has_role(db: AsyncSession, role: OrganizationRole, user_id: str) -> bool:
    result = await db.execute(
        select(organization_user_roles).where(
            and_(
                organization_user_roles.c.role_id == role.id,
                organization_user_roles.c.user_id == user_id
            )
        )
    )
    return result.first() is not None


async def list_user_roles(db: AsyncSession, organization_id: str, user_id: str) -> list[OrganizationRole]:
    """Roles of the organization that the user actually holds."""
    result = await db.execute(
        select(OrganizationRole)
        .join(organization_user_roles, organization_user_roles.c.role_id == OrganizationRole.id)
        .where(
            and_(
                OrganizationRole.organization_id == organization_id,
                organization_user_roles.c.user_id == user_id
            )
        )
        .order_by(OrganizationRole.name)
    )
    return list(result.scalars().all())


async def list_role_users(db: AsyncSession, role: OrganizationRole) -> list[User]:
    result = await db.execute(
        select(User)
        .join(organization_user_roles, organization_user_roles.c.user_id == User.id)
        .where(organization_user_roles.c.role_id == role.id)
        .order_by(User.name)
    )
    return list(result.scalars().all())


# ============================================================================
# Role lifecycle
# ============================================================================

async def create_role(
    db: AsyncSession,
    organization: Organization,
    name: str,
    description: Optional[str],
    actor: User,
) -> OrganizationRole:
    """
    Create a role in the organization.

    Raises:
        BadRequestError: the name is empty or malformed
        ConflictError: a role with this name already exists in the organization
    """
    if not is_valid_role_name(name):
        raise BadRequestError(f"{ROLE_NAME_RULE}: {name!r}")

    if await get_role_by_name(db, organization.id, name) is not None:
        log.debug("duplicate role %s in %s", name, organization.name)
        raise ConflictError(f"Role {name} already exists in organization {organization.name}")

    role = OrganizationRole(organization_id=organization.id, name=name, description=description)
    db.add(role)
    try:
        await db.flush()
    except IntegrityError as exc:
        log.debug("role %s created concurrently in %s", name, organization.name)
        raise ConflictError(f"Role {name} already exists in organization {organization.name}") from exc

    record_admin_event(
        db,
        user_id=actor.id,
        resource_type=ResourceType.ORGANIZATION_ROLE,
        operation_type=OperationType.CREATE,
        resource_path=role_path(organization, name),
        organization_id=organization.id,
        representation=OrganizationRoleResponse.model_validate(role).model_dump(),
    )
    log.info("Created role %s in organization %s", name, organization.name)
    return role


async def update_role(
    db: AsyncSession,
    organization: Organization,
    role: OrganizationRole,
    description: Optional[str],
    actor: User,
) -> OrganizationRole:
    role.description = description
    await db.flush()

    record_admin_event(
        db,
        user_id=actor.id,
        resource_type=ResourceType.ORGANIZATION_ROLE,
        operation_type=OperationType.UPDATE,
        resource_path=role_path(organization, role.name),
        organization_id=organization.id,
        representation=OrganizationRoleResponse.model_validate(role).model_dump(),
    )
    return role


async def delete_role(
    db: AsyncSession,
    organization: Organization,
    name: str,
    actor: User,
) -> None:
    """
    Remove a role and its assignments.

    Removing a role that does not exist is a no-op that still counts as a
    completed deletion.

    Raises:
        BadRequestError: the role is one of the default organization roles
    """
    if is_default_role(name):
        raise BadRequestError(f"Default organization role {name} cannot be deleted.")

    role_ids = select(OrganizationRole.id).where(
        and_(
            OrganizationRole.organization_id == organization.id,
            OrganizationRole.name == name
        )
    )
    await db.execute(
        delete(organization_user_roles).where(organization_user_roles.c.role_id.in_(role_ids))
    )
    result = await db.execute(
        delete(OrganizationRole).where(
            and_(
                OrganizationRole.organization_id == organization.id,
                OrganizationRole.name == name
            )
        )
    )

    record_admin_event(
        db,
        user_id=actor.id,
        resource_type=ResourceType.ORGANIZATION_ROLE,
        operation_type=OperationType.DELETE,
        resource_path=role_path(organization, name),
        organization_id=organization.id,
    )
    log.info("Deleted role %s in organization %s (%d removed)", name, organization.name, result.rowcount)


# ============================================================================
# Role assignment
# ============================================================================

async def _require_role(db: AsyncSession, organization: Organization, role_name: str) -> OrganizationRole:
    """Look up a role for assignment; the 404 names the organization by its name, not its id."""
    role = await get_role_by_name(db, organization.id, role_name)
    if role is None:
        raise NotFoundError(f"Organization {organization.name} doesn't contain role {role_name}")
    return role


async def grant_role(
    db: AsyncSession,
    organization: Organization,
    user: User,
    role_name: str,
    actor: User,
) -> bool:
    """
    Grant a role to a member. Granting a role already held is a no-op.

    Returns:
        True if the assignment was created

    Raises:
        NotFoundError: the organization has no role with this name
    """
    role = await _require_role(db, organization, role_name)
    if await has_role(db, role, user.id):
        return False

    await db.execute(
        insert(organization_user_roles).values(
            role_id=role.id,
            user_id=user.id,
            organization_id=organization.id
        )
    )
    record_admin_event(
        db,
        user_id=actor.id,
        resource_type=ResourceType.ORGANIZATION_ROLE_MAPPING,
        operation_type=OperationType.CREATE,
        resource_path=role_mapping_path(organization, user, role_name),
        organization_id=organization.id,
        representation=user.id,
    )
    log.info("Granted role %s to user %s in organization %s", role_name, user.id, organization.name)
    return True


async def revoke_role(
    db: AsyncSession,
    organization: Organization,
    user: User,
    role_name: str,
    actor: User,
) -> bool:
    """
    Revoke a role from a member. Revoking a role not held is a no-op.

    Returns:
        True if an assignment was removed

    Raises:
        NotFoundError: the organization has no role with this name
    """
    role = await _require_role(db, organization, role_name)
    if not await has_role(db, role, user.id):
        return False

    await db.execute(
        delete(organization_user_roles).where(
            and_(
                organization_user_roles.c.role_id == role.id,
                organization_user_roles.c.user_id == user.id
            )
        )
    )
    record_admin_event(
        db,
        user_id=actor.id,
        resource_type=ResourceType.ORGANIZATION_ROLE_MAPPING,
        operation_type=OperationType.DELETE,
        resource_path=role_mapping_path(organization, user, role_name),
        organization_id=organization.id,
        representation=user.id,
    )
    log.info("Revoked role %s from user %s in organization %s", role_name, user.id, organization.name)
    return True
