"""
Organization-related dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.database.engine import get_db
from orgroles.core.errors import NotFoundError
from orgroles.features.organizations.models import Organization
from orgroles.features.organizations.service import get_organization


async def get_organization_by_id(
    organization_id: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Organization:
    """
    Get organization by ID or raise 404.
    """
    organization = await get_organization(db, organization_id)

    if organization is None:
        raise NotFoundError(f"Organization {organization_id} doesn't exist")

    return organization
