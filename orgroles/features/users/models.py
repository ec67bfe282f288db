"""
User model.

Users are provisioned from the upstream identity provider on first login.
The active organization is a single attribute on the user row.
"""
from datetime import datetime
from sqlalchemy import String, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from orgroles.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


class User(Base, UlidPrimaryKeyMixin, TimestampMixin):
    """
    User model representing authenticated users.

    ``is_admin`` carries the global organization capabilities
    (view and manage every organization).
    """
    __tablename__ = "users"

    # Appwrite user ID (for linking with Appwrite authentication)
    appwrite_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Status flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Currently selected organization; may point to an organization the user
    # has since left, in which case it is stale
    active_organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"
