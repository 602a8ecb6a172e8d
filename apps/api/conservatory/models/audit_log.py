"""Audit log model for tracking state-changing actions."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from conservatory.models.base import Base, JSONType, UUIDMixin
from conservatory.utils.timezone import utc_now


class AuditSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AuditAction(str, Enum):
    """Tags for audited actions."""

    # User management
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"
    USER_ARCHIVED = "USER_ARCHIVED"
    USER_RESTORED = "USER_RESTORED"
    USER_STATUS_CHANGED = "USER_STATUS_CHANGED"

    # Roles
    ROLE_ASSIGNED = "ROLE_ASSIGNED"
    ROLE_CHANGED = "ROLE_CHANGED"
    ROLE_REMOVED = "ROLE_REMOVED"

    # Batches
    BATCH_CREATED = "BATCH_CREATED"
    BATCH_UPDATED = "BATCH_UPDATED"
    BATCH_DELETED = "BATCH_DELETED"
    STUDENT_ADDED_TO_BATCH = "STUDENT_ADDED_TO_BATCH"
    STUDENT_REMOVED_FROM_BATCH = "STUDENT_REMOVED_FROM_BATCH"
    BATCH_REASSIGNED = "BATCH_REASSIGNED"

    # Batch change requests
    BATCH_CHANGE_REQUESTED = "BATCH_CHANGE_REQUESTED"
    BATCH_CHANGE_APPROVED = "BATCH_CHANGE_APPROVED"
    BATCH_CHANGE_REJECTED = "BATCH_CHANGE_REJECTED"
    BATCH_CHANGE_ADMIN_OVERRIDE = "BATCH_CHANGE_ADMIN_OVERRIDE"

    # Holidays
    HOLIDAY_CREATED = "HOLIDAY_CREATED"
    HOLIDAY_APPROVED = "HOLIDAY_APPROVED"
    HOLIDAY_REJECTED = "HOLIDAY_REJECTED"
    HOLIDAY_DELETED = "HOLIDAY_DELETED"

    # Attendance
    ATTENDANCE_MARKED = "ATTENDANCE_MARKED"
    ATTENDANCE_UPDATED = "ATTENDANCE_UPDATED"
    ATTENDANCE_OVERRIDE = "ATTENDANCE_OVERRIDE"

    # Announcements
    ANNOUNCEMENT_CREATED = "ANNOUNCEMENT_CREATED"
    ANNOUNCEMENT_UPDATED = "ANNOUNCEMENT_UPDATED"
    ANNOUNCEMENT_DELETED = "ANNOUNCEMENT_DELETED"

    # Payments
    PAYMENT_RECORDED = "PAYMENT_RECORDED"
    PAYMENT_UPDATED = "PAYMENT_UPDATED"
    PAYMENT_VOIDED = "PAYMENT_VOIDED"

    # System
    SYSTEM_CONFIG_CHANGED = "SYSTEM_CONFIG_CHANGED"
    BULK_OPERATION = "BULK_OPERATION"
    DATA_EXPORT = "DATA_EXPORT"
    DATA_IMPORT = "DATA_IMPORT"

    # Sessions
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PASSWORD_RESET = "PASSWORD_RESET"


class AuditLog(Base, UUIDMixin):
    """
    Immutable audit log entry.

    Rows are only ever inserted; nothing in the application updates or
    deletes them.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_performer_created", "performed_by", "created_at"),
        Index("ix_audit_logs_target_created", "target_model", "target_id", "created_at"),
        Index("ix_audit_logs_action_created", "action", "created_at"),
        Index("ix_audit_logs_severity_created", "severity", "created_at"),
    )

    # What happened
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(
        String(20),
        default=AuditSeverity.INFO.value,
        nullable=False,
    )

    # Who performed it
    performed_by: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    performer_role: Mapped[str] = mapped_column(String(50), nullable=False)

    # What was affected
    target_model: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. "Role", "User"
    target_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    # State snapshots
    previous_state: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    new_state: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    extra_data: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    # Request context
    request_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # IPv6 max length
    user_agent: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.target_model}:{self.target_id}>"
