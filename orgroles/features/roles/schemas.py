"""
Pydantic schemas for organization roles.
"""
import re
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


ROLE_NAME_MAX_LENGTH = 255
ROLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
ROLE_NAME_RULE = "Role name must contain only alphanumeric characters, underscores, dots, and hyphens"


def is_valid_role_name(name: str) -> bool:
    return len(name) <= ROLE_NAME_MAX_LENGTH and ROLE_NAME_PATTERN.match(name) is not None


class OrganizationRoleRepresentation(BaseModel):
    """
    A role as submitted by clients in bulk requests.

    Names are not checked here: a malformed name fails only its own item in
    the batch. Bulk outcomes echo the item back unchanged.
    """
    name: str = Field(..., description="Role name, unique within the organization")
    description: Optional[str] = Field(None, description="Role description")


class OrganizationRoleCreate(OrganizationRoleRepresentation):
    """Schema for creating a single role."""
    name: str = Field(..., min_length=1, max_length=ROLE_NAME_MAX_LENGTH,
                      description="Role name, unique within the organization")
    description: Optional[str] = Field(None, max_length=1000, description="Role description")

    @field_validator('name')
    @classmethod
    def name_alphanumeric_underscore(cls, v: str) -> str:
        """Validate role name format."""
        if not is_valid_role_name(v):
            raise ValueError(ROLE_NAME_RULE)
        return v


class RoleUpdate(BaseModel):
    """Schema for updating a role."""
    description: Optional[str] = Field(None, max_length=1000)


class OrganizationRoleResponse(BaseModel):
    """Schema for role response."""
    id: str
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrganizationRoleDetail(OrganizationRoleResponse):
    """Role with bookkeeping fields."""
    organization_id: str
    created_at: datetime
    updated_at: datetime
