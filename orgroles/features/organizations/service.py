"""
Organization and membership data access.

Organization lifecycle belongs to the host platform; this module keeps the
minimum needed to create a tenant with its default roles and to manage
membership.
"""
from typing import Optional
from sqlalchemy import select, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.features.organizations.models import Organization, user_organizations
from orgroles.features.permissions.capabilities import ADMIN_ROLE, DEFAULT_ORG_ROLES, DEFAULT_ROLE_DESCRIPTIONS
from orgroles.features.roles.models import OrganizationRole, organization_user_roles
from orgroles.features.users.models import User
from orgroles.utils import get_logger


log = get_logger(__name__)


async def get_organization(db: AsyncSession, organization_id: str) -> Optional[Organization]:
    result = await db.execute(select(Organization).where(Organization.id == organization_id))
    return result.scalar_one_or_none()


async def get_organization_by_name(db: AsyncSession, name: str) -> Optional[Organization]:
    result = await db.execute(select(Organization).where(Organization.name == name))
    return result.scalar_one_or_none()


async def is_member(db: AsyncSession, organization_id: str, user_id: str) -> bool:
    result = await db.execute(
        select(user_organizations).where(
            and_(
                user_organizations.c.organization_id == organization_id,
                user_organizations.c.user_id == user_id
            )
        )
    )
    return result.first() is not None


async def list_user_organizations(db: AsyncSession, user_id: str) -> list[Organization]:
    """Organizations the user belongs to, ordered by name."""
    result = await db.execute(
        select(Organization)
        .join(user_organizations, user_organizations.c.organization_id == Organization.id)
        .where(user_organizations.c.user_id == user_id)
        .order_by(Organization.name)
    )
    return list(result.scalars().all())


async def add_member(db: AsyncSession, organization: Organization, user: User) -> bool:
    """Add a membership. Returns False if the user was already a member."""
    if await is_member(db, organization.id, user.id):
        return False
    await db.execute(
        user_organizations.insert().values(user_id=user.id, organization_id=organization.id)
    )
    log.info("Added user %s to organization %s", user.id, organization.name)
    return True


async def remove_member(db: AsyncSession, organization: Organization, user: User) -> bool:
    """
    Remove a membership and every role assignment the user had in the
    organization. Returns False if the user was not a member.

    The user's active organization attribute is left untouched.
    """
    if not await is_member(db, organization.id, user.id):
        return False
    await db.execute(
        delete(organization_user_roles).where(
            and_(
                organization_user_roles.c.organization_id == organization.id,
                organization_user_roles.c.user_id == user.id
            )
        )
    )
    await db.execute(
        delete(user_organizations).where(
            and_(
                user_organizations.c.organization_id == organization.id,
                user_organizations.c.user_id == user.id
            )
        )
    )
    log.info("Removed user %s from organization %s", user.id, organization.name)
    return True


async def count_members(db: AsyncSession, organization_id: str) -> int:
    result = await db.execute(
        select(user_organizations.c.user_id).where(user_organizations.c.organization_id == organization_id)
    )
    return len(result.all())


async def create_organization(
    db: AsyncSession,
    name: str,
    display_name: Optional[str],
    creator: User,
) -> Organization:
    """
    Create an organization carrying the default roles, with the creator as a
    member holding the admin role.
    """
    organization = Organization(name=name, display_name=display_name)
    db.add(organization)
    await db.flush()

    await ensure_default_roles(db, organization)
    admin_role = (await db.execute(
        select(OrganizationRole).where(
            and_(
                OrganizationRole.organization_id == organization.id,
                OrganizationRole.name == ADMIN_ROLE
            )
        )
    )).scalar_one()

    await add_member(db, organization, creator)
    await db.execute(
        organization_user_roles.insert().values(
            role_id=admin_role.id, user_id=creator.id, organization_id=organization.id
        )
    )
    log.info("Created organization %s (%s)", organization.name, organization.id)
    return organization


async def ensure_default_roles(db: AsyncSession, organization: Organization) -> list[str]:
    """
    Create whichever default roles the organization is missing.

    Returns:
        Names of the roles created, empty if all were present
    """
    result = await db.execute(
        select(OrganizationRole.name).where(
            and_(
                OrganizationRole.organization_id == organization.id,
                OrganizationRole.name.in_(DEFAULT_ORG_ROLES)
            )
        )
    )
    present = set(result.scalars().all())

    created = []
    for role_name in sorted(DEFAULT_ORG_ROLES - present):
        db.add(OrganizationRole(
            organization_id=organization.id,
            name=role_name,
            description=DEFAULT_ROLE_DESCRIPTIONS.get(role_name),
        ))
        created.append(role_name)
    await db.flush()

    if created:
        log.info("Created default roles %s in organization %s", created, organization.name)
    return created


async def list_organizations(db: AsyncSession) -> list[Organization]:
    result = await db.execute(select(Organization).order_by(Organization.name))
    return list(result.scalars().all())
