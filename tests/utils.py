"""
Test helpers shared across modules.
"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.features.audit.models import AdminEvent
from orgroles.features.organizations.models import Organization
from orgroles.features.organizations.service import create_organization
from orgroles.features.users.models import User


async def make_user(db: AsyncSession, name: str, is_admin: bool = False) -> User:
    user = User(appwrite_id=f"aw-{name}", email=f"{name}@example.com", name=name, is_admin=is_admin)
    db.add(user)
    await db.flush()
    return user


async def make_organization(db: AsyncSession, name: str, creator: User) -> Organization:
    organization = await create_organization(db, name, None, creator)
    await db.commit()
    return organization


async def count_events(db: AsyncSession, **filters) -> int:
    await db.flush()
    stmt = select(func.count()).select_from(AdminEvent)
    for key, value in filters.items():
        stmt = stmt.where(getattr(AdminEvent, key) == value)
    return (await db.execute(stmt)).scalar()
