"""
SQLAlchemy declarative base and common model utilities.

All SQLAlchemy models inherit from Base and use ULID string primary keys.
"""
from datetime import datetime
from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        from orgroles.core.database.base import Base, UlidPrimaryKeyMixin

        class Organization(Base, UlidPrimaryKeyMixin):
            __tablename__ = "organizations"
            name: Mapped[str] = mapped_column(String(255))
    """
    pass


class UlidPrimaryKeyMixin:
    """26-character ULID primary key."""
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.
    """
    __mapper_args__ = {"eager_defaults": True}

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
