"""
Admin event log.

One row per successful state change: who did what to which resource path,
with the representation that was written.
"""
import enum
from typing import Any
from sqlalchemy import String, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from orgroles.core.database.base import Base, TimestampMixin, UlidPrimaryKeyMixin


class ResourceType(str, enum.Enum):
    ORGANIZATION_ROLE = "ORGANIZATION_ROLE"
    ORGANIZATION_ROLE_MAPPING = "ORGANIZATION_ROLE_MAPPING"


class OperationType(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AdminEvent(Base, UlidPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "admin_events"

    # Actor
    user_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    resource_type: Mapped[ResourceType] = mapped_column(SQLEnum(ResourceType), nullable=False, index=True)
    operation_type: Mapped[OperationType] = mapped_column(SQLEnum(OperationType), nullable=False, index=True)
    resource_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    representation: Mapped[Any | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AdminEvent(id={self.id}, user_id={self.user_id}, "
            f"{self.operation_type} {self.resource_type} {self.resource_path!r})>"
        )
