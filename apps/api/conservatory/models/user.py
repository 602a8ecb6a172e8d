"""
User and status models.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID
from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, StandardMixin, AuditMixin, SoftDeleteMixin
from .role import Role


class StatusName(str, Enum):
    """Account statuses an admin can assign."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    HOLD = "HOLD"
    BLOCKED = "BLOCKED"
    ACTIVE_SOON = "ACTIVE SOON"


class Status(Base, StandardMixin):
    """Account status catalog entry."""

    __tablename__ = "statuses"

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Status {self.name}>"


class User(Base, StandardMixin, AuditMixin, SoftDeleteMixin):
    """
    User account.

    Archived users (deleted_at set) cannot log in and are excluded from
    role statistics and bulk operations.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("statuses.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Bumped to invalidate every token issued before the change
    token_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    role: Mapped[Role] = relationship(Role, lazy="selectin")
    status: Mapped[Status | None] = relationship(Status, lazy="selectin")

    @property
    def is_active(self) -> bool:
        """Live account whose status allows access."""
        if self.is_deleted:
            return False
        return self.status is None or self.status.name == StatusName.ACTIVE.value

    def __repr__(self) -> str:
        return f"<User {self.email}>"
