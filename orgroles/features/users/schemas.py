"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class UserResponse(BaseModel):
    """Schema for user responses."""
    id: str
    email: EmailStr
    name: str
    is_active: bool
    is_admin: bool
    active_organization_id: str | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserPublic(BaseModel):
    """Public user information (limited fields)."""
    id: str
    name: str

    model_config = {"from_attributes": True}


class SwitchOrganization(BaseModel):
    """Schema for switching the active organization."""
    id: str = Field(..., min_length=1, description="ID of the organization to switch to")


class TokenResponse(BaseModel):
    """Fresh credential bundle scoped to the active organization."""
    access_token: str
    expires_in: int
    refresh_token: str
    refresh_expires_in: int
    token_type: str = "Bearer"
    session_state: str
