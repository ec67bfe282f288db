"""
Pydantic schemas for admin events.
"""
from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict

from orgroles.features.audit.models import ResourceType, OperationType


class AdminEventResponse(BaseModel):
    """Schema for admin event response."""
    id: str
    user_id: Optional[str]
    organization_id: Optional[str]
    resource_type: ResourceType
    operation_type: OperationType
    resource_path: str
    representation: Optional[Any] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminEventListResponse(BaseModel):
    """Schema for paginated admin event list."""
    items: List[AdminEventResponse]
    total: int
    page: int
    page_size: int
    pages: int
