"""
Admin event recording helpers.
"""
from typing import Any, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from orgroles.features.audit.models import AdminEvent, ResourceType, OperationType
from orgroles.utils import get_logger


log = get_logger(__name__)


def record_admin_event(
    db: AsyncSession,
    user_id: Optional[str],
    resource_type: ResourceType,
    operation_type: OperationType,
    resource_path: str,
    organization_id: Optional[str] = None,
    representation: Any = None,
) -> AdminEvent:
    """
    Add an admin event to the current unit of work.

    Only call this after the state change it describes has been applied; the
    event is committed together with that change.

    Args:
        db: Database session
        user_id: Acting user
        resource_type: Kind of resource changed
        operation_type: CREATE, UPDATE or DELETE
        resource_path: Path of the changed resource, e.g. "organizations/<id>/roles/billing"
        organization_id: Organization context
        representation: JSON-serializable representation written
    """
    event = AdminEvent(
        user_id=user_id,
        organization_id=organization_id,
        resource_type=resource_type,
        operation_type=operation_type,
        resource_path=resource_path,
        representation=representation,
    )
    db.add(event)

    log.info(
        "Admin event: user=%s %s %s %s org=%s",
        user_id, operation_type.value, resource_type.value, resource_path, organization_id
    )
    return event
