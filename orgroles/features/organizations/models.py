"""
Organization (tenant) model and membership table.

Users can belong to multiple organizations. Membership carries no
attributes beyond presence.
"""
from sqlalchemy import String, ForeignKey, Table, Column, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from orgroles.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


# Association table for many-to-many relationship between users and organizations
user_organizations = Table(
    "user_organizations",
    Base.metadata,
    Column("user_id", String(26), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("organization_id", String(26), ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True),
)


class Organization(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    Organization model.

    Owns a set of roles (see ``orgroles.features.roles.models``) and a set of
    memberships.
    """
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"
