"""
Pydantic schemas for organization-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field


class OrganizationCreate(BaseModel):
    """Schema for creating a new organization."""
    name: str = Field(..., min_length=1, max_length=255, pattern="^[A-Za-z0-9_.-]+$")
    display_name: str | None = Field(None, max_length=255)


class OrganizationResponse(BaseModel):
    """Schema for organization responses."""
    id: str
    name: str
    display_name: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    member_count: int | None = Field(None, description="Number of users in this organization")

    model_config = {"from_attributes": True}


class OrganizationPublic(BaseModel):
    """Organization representation returned by user-facing endpoints."""
    id: str
    name: str
    display_name: str | None = None

    model_config = {"from_attributes": True}


class AddUserToOrganization(BaseModel):
    """Schema for adding a user to an organization."""
    user_id: str = Field(..., description="ID of the user to add")
