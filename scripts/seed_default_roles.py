"""
Seed script to backfill default organization roles.

Run this script after database initialization to make sure every
organization carries the default roles ("admin" and "member"). Organizations
that already have them are left alone.

Usage:
    python -m scripts.seed_default_roles
"""
import asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.database.engine import get_db, init_db
from orgroles.features.organizations.service import ensure_default_roles, list_organizations
from orgroles.features.permissions.capabilities import DEFAULT_ROLE_DESCRIPTIONS
from orgroles.utils import get_logger


log = get_logger(__name__)


async def seed_default_roles(db: AsyncSession) -> dict[str, list[str]]:
    """
    Create missing default roles in every organization.

    Returns:
        Dictionary mapping organization names to the roles created there
    """
    log.info("Backfilling default roles...")
    created = {}

    for organization in await list_organizations(db):
        names = await ensure_default_roles(db, organization)
        if names:
            created[organization.name] = names
        else:
            log.debug(f"Organization '{organization.name}' already has the default roles, skipping")

    await db.commit()
    log.info(f"Backfilled default roles in {len(created)} organizations")
    return created


async def main():
    """Main function to backfill default roles."""
    log.info("Starting default role seeding...")

    # Initialize database tables first
    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            await seed_default_roles(db)

            log.info("Default role seeding completed successfully!")
            log.info("")
            log.info("Default roles:")
            for role_name, description in DEFAULT_ROLE_DESCRIPTIONS.items():
                log.info(f"  - {role_name}: {description}")

        except Exception as e:
            log.error(f"Error seeding default roles: {e}", exc_info=True)
            await db.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(main())
