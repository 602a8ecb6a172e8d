"""
Database models.
"""

from .base import (
    Base,
    JSONType,
    TimestampMixin,
    AuditMixin,
    SoftDeleteMixin,
    UUIDMixin,
    StandardMixin,
)
from .role import Role, Permission, role_permissions
from .user import User, Status, StatusName
from .school import Batch, Attendance, Payment, Announcement, Holiday
from .audit_log import AuditLog, AuditAction, AuditSeverity

__all__ = [
    # Base
    "Base",
    "JSONType",
    # Mixins
    "TimestampMixin",
    "AuditMixin",
    "SoftDeleteMixin",
    "UUIDMixin",
    "StandardMixin",
    # RBAC
    "Role",
    "Permission",
    "role_permissions",
    # Accounts
    "User",
    "Status",
    "StatusName",
    # School records
    "Batch",
    "Attendance",
    "Payment",
    "Announcement",
    "Holiday",
    # Audit
    "AuditLog",
    "AuditAction",
    "AuditSeverity",
]
