"""
Base model classes and mixins.

- TimestampMixin: created_at, updated_at
- AuditMixin: created_by, updated_by
- SoftDeleteMixin: deleted_at, deleted_by (archiving)
- UUIDMixin: UUID primary key
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID as PyUUID, uuid4
from sqlalchemy import JSON, DateTime, ForeignKey, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""

    # All datetimes are timezone-aware
    type_annotation_map = {
        datetime: DateTime(timezone=True),
        PyUUID: Uuid(),
    }

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


# ============================================================
# TIMESTAMP MIXINS
# ============================================================

class TimestampMixin:
    """
    Mixin for created_at and updated_at timestamps.

    All timestamps are stored in UTC.
    """

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


class AuditMixin:
    """
    Mixin for tracking who created/updated records.

    updated_by must be set in the service layer; SQLAlchemy can't know
    the current user.
    """

    created_by: Mapped[Optional[PyUUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    updated_by: Mapped[Optional[PyUUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )


# ============================================================
# SOFT DELETE MIXIN
# ============================================================

class SoftDeleteMixin:
    """
    Mixin for archiving records instead of deleting them.

    Usage:
        # Archive
        record.deleted_at = utc_now()
        record.deleted_by = actor_id

        # Query live records
        select(MyModel).where(MyModel.deleted_at.is_(None))
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        index=True,
    )
    deleted_by: Mapped[Optional[PyUUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    @property
    def is_deleted(self) -> bool:
        """Check if record is archived."""
        return self.deleted_at is not None


# ============================================================
# PRIMARY KEY MIXIN
# ============================================================

class UUIDMixin:
    """Mixin for a UUID v4 primary key."""

    id: Mapped[PyUUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid4,
    )


class StandardMixin(UUIDMixin, TimestampMixin):
    """UUID primary key plus timestamps."""
    pass
