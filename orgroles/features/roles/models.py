"""
Organization role models.

A role belongs to exactly one organization and its name is unique within
that organization. A role assignment is the bare (role, user) pair.
"""
from sqlalchemy import String, ForeignKey, Table, Column, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from orgroles.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


organization_user_roles = Table(
    "organization_user_roles",
    Base.metadata,
    Column("role_id", String(26), ForeignKey("organization_roles.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("organization_id", String(26), ForeignKey("organizations.id", ondelete="CASCADE"),
           nullable=False, index=True),
)


class OrganizationRole(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    Named role scoped to one organization.

    Examples: admin, member, billing, manage-roles
    """
    __tablename__ = "organization_roles"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_organization_role_name"),
    )

    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<OrganizationRole(id={self.id}, name={self.name!r}, org_id={self.organization_id})>"
