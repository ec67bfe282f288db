"""
Admin event routes.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.core.database.engine import get_db
from orgroles.features.users.dependencies import get_current_admin_user
from orgroles.features.users.models import User
from orgroles.features.audit.models import AdminEvent, ResourceType, OperationType
from orgroles.features.audit.schemas import AdminEventResponse, AdminEventListResponse


router = APIRouter(tags=["admin-events"])


@router.get("", response_model=AdminEventListResponse)
async def list_admin_events(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: Annotated[User, Depends(get_current_admin_user)],
    skip: int = 0,
    limit: int = 50,
    organization_id: Optional[str] = None,
    user_id: Optional[str] = None,
    resource_type: Optional[ResourceType] = None,
    operation_type: Optional[OperationType] = None,
):
    """List admin events with optional filtering (global admins only)."""
    stmt = select(AdminEvent)

    if organization_id:
        stmt = stmt.where(AdminEvent.organization_id == organization_id)
    if user_id:
        stmt = stmt.where(AdminEvent.user_id == user_id)
    if resource_type:
        stmt = stmt.where(AdminEvent.resource_type == resource_type)
    if operation_type:
        stmt = stmt.where(AdminEvent.operation_type == operation_type)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = stmt.order_by(AdminEvent.created_at.desc(), AdminEvent.id.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)
    events = result.scalars().all()

    pages = (total + limit - 1) // limit if limit > 0 else 0
    page = (skip // limit) + 1 if limit > 0 else 1

    return AdminEventListResponse(
        items=[AdminEventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=limit,
        pages=pages
    )
