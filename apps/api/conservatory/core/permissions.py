"""
Permission catalog and default role grants.

Permissions are `DOMAIN:ACTION:SCOPE` strings. The catalog below is the
single authoritative set; persisted Permission rows mirror it for listing
and are reconciled against it by SystemService.sync_permissions().
"""

from enum import Enum
from types import MappingProxyType
from typing import NamedTuple


class PermissionCode(str, Enum):
    """Every permission known to the application."""

    # Profile & account
    PROFILE_READ_SELF = "PROFILE:READ:SELF"
    PROFILE_UPDATE_SELF_LIMITED = "PROFILE:UPDATE:SELF_LIMITED"
    PROFILE_UPDATE_SELF_FULL = "PROFILE:UPDATE:SELF_FULL"
    PROFILE_UPDATE_STUDENT_UNDER_BATCH = "PROFILE:UPDATE:STUDENT_UNDER_BATCH"
    PROFILE_UPDATE_STUDENT_ANY = "PROFILE:UPDATE:STUDENT_ANY"
    PASSWORD_CHANGE_SELF = "PASSWORD:CHANGE:SELF"

    # Students
    STUDENT_READ_SELF = "STUDENT:READ:SELF"
    STUDENT_READ_UNDER_BATCH = "STUDENT:READ:UNDER_BATCH"
    STUDENT_READ_ANY = "STUDENT:READ:ANY"
    STUDENT_CREATE = "STUDENT:CREATE:ANY"
    STUDENT_UPDATE_STATUS_UNDER_BATCH = "STUDENT:UPDATE_STATUS:UNDER_BATCH"
    STUDENT_UPDATE_STATUS_ANY = "STUDENT:UPDATE_STATUS:ANY"

    # Teachers
    TEACHER_READ_SELF = "TEACHER:READ:SELF"
    TEACHER_READ_ANY = "TEACHER:READ:ANY"
    TEACHER_CREATE = "TEACHER:CREATE:ANY"
    TEACHER_UPDATE = "TEACHER:UPDATE:ANY"

    # Batches
    BATCH_READ_OWN = "BATCH:READ:OWN"
    BATCH_READ_UNDER_TEACHER = "BATCH:READ:UNDER_TEACHER"
    BATCH_READ_ANY = "BATCH:READ:ANY"
    BATCH_CREATE = "BATCH:CREATE:ANY"
    BATCH_UPDATE = "BATCH:UPDATE:ANY"
    BATCH_DELETE = "BATCH:DELETE:ANY"

    # Attendance
    ATTENDANCE_READ_SELF = "ATTENDANCE:READ:SELF"
    ATTENDANCE_READ_UNDER_BATCH = "ATTENDANCE:READ:UNDER_BATCH"
    ATTENDANCE_READ_ANY = "ATTENDANCE:READ:ANY"
    ATTENDANCE_UPDATE_UNDER_BATCH = "ATTENDANCE:UPDATE:UNDER_BATCH"
    ATTENDANCE_UPDATE_ANY = "ATTENDANCE:UPDATE:ANY"

    # Batch change requests
    BATCH_CHANGE_CREATE = "BATCH_CHANGE:CREATE:SELF"
    BATCH_CHANGE_READ_UNDER_BATCH = "BATCH_CHANGE:READ:UNDER_BATCH"
    BATCH_CHANGE_READ_ANY = "BATCH_CHANGE:READ:ANY"
    BATCH_CHANGE_APPROVE_UNDER_BATCH = "BATCH_CHANGE:APPROVE:UNDER_BATCH"
    BATCH_CHANGE_APPROVE_ANY = "BATCH_CHANGE:APPROVE:ANY"

    # Announcements
    ANNOUNCEMENT_READ = "ANNOUNCEMENT:READ:ANY"
    ANNOUNCEMENT_CREATE = "ANNOUNCEMENT:CREATE:ANY"
    ANNOUNCEMENT_UPDATE = "ANNOUNCEMENT:UPDATE:ANY"
    ANNOUNCEMENT_DELETE = "ANNOUNCEMENT:DELETE:ANY"

    # Practice
    PRACTICE_ACCESS = "PRACTICE:ACCESS:ANY"

    # Zoom
    ZOOM_POST_UNDER_BATCH = "ZOOM:POST:UNDER_BATCH"
    ZOOM_POST_ANY = "ZOOM:POST:ANY"
    ZOOM_VIEW_UNDER_BATCH = "ZOOM:VIEW:UNDER_BATCH"
    ZOOM_VIEW_ALL = "ZOOM:VIEW:ALL"

    # Analytics
    ANALYTICS_VIEW_UNDER_BATCH = "ANALYTICS:VIEW:UNDER_BATCH"
    ANALYTICS_VIEW_ANY = "ANALYTICS:VIEW:ANY"
    REPORT_GENERATE = "REPORT:GENERATE:ANY"

    # Payments
    PAYMENT_READ_SELF = "PAYMENT:READ:SELF"
    PAYMENT_READ_UNDER_BATCH = "PAYMENT:READ:UNDER_BATCH"
    PAYMENT_READ_ANY = "PAYMENT:READ:ANY"

    # Holidays & scheduling
    HOLIDAY_READ = "HOLIDAY:READ:ANY"
    HOLIDAY_DECLARE_UNDER_BATCH = "HOLIDAY:DECLARE:UNDER_BATCH"
    HOLIDAY_DECLARE_ANY = "HOLIDAY:DECLARE:ANY"
    SCHEDULE_RESCHEDULE_UNDER_BATCH = "SCHEDULE:RESCHEDULE:UNDER_BATCH"
    SCHEDULE_RESCHEDULE_ANY = "SCHEDULE:RESCHEDULE:ANY"

    # System
    ROLE_ASSIGN = "ROLE:ASSIGN:ANY"
    DATABASE_ACCESS = "DATABASE:ACCESS:ANY"
    SYSTEM_CONFIGURE = "SYSTEM:CONFIGURE:ANY"

    @property
    def domain(self) -> str:
        return self.value.split(":", 1)[0]

    @property
    def action(self) -> str:
        return self.value.split(":")[1]

    @property
    def scope(self) -> str:
        return self.value.split(":")[2]


class PermissionInfo(NamedTuple):
    label: str
    description: str


_P = PermissionCode

PERMISSION_DETAILS = MappingProxyType({
    _P.PROFILE_READ_SELF: PermissionInfo("Read Own Profile", "View own profile information"),
    _P.PROFILE_UPDATE_SELF_LIMITED: PermissionInfo("Update Own Profile (Limited)", "Update basic profile fields"),
    _P.PROFILE_UPDATE_SELF_FULL: PermissionInfo("Update Own Profile (Full)", "Update all profile fields including sensitive data"),
    _P.PROFILE_UPDATE_STUDENT_UNDER_BATCH: PermissionInfo("Update Student Profile (Under Batch)", "Update profiles of students in assigned batches"),
    _P.PROFILE_UPDATE_STUDENT_ANY: PermissionInfo("Update Any Student Profile", "Update any student profile"),
    _P.PASSWORD_CHANGE_SELF: PermissionInfo("Change Own Password", "Change own password"),

    _P.STUDENT_READ_SELF: PermissionInfo("Read Own Student Data", "View own student information"),
    _P.STUDENT_READ_UNDER_BATCH: PermissionInfo("Read Students (Under Batch)", "View students in assigned batches"),
    _P.STUDENT_READ_ANY: PermissionInfo("Read Any Student", "View any student data"),
    _P.STUDENT_CREATE: PermissionInfo("Create Student", "Create new student accounts"),
    _P.STUDENT_UPDATE_STATUS_UNDER_BATCH: PermissionInfo("Update Student Status (Under Batch)", "Update status of students in assigned batches"),
    _P.STUDENT_UPDATE_STATUS_ANY: PermissionInfo("Update Any Student Status", "Update any student status"),

    _P.TEACHER_READ_SELF: PermissionInfo("Read Own Teacher Data", "View own teacher information"),
    _P.TEACHER_READ_ANY: PermissionInfo("Read Any Teacher", "View any teacher data"),
    _P.TEACHER_CREATE: PermissionInfo("Create Teacher", "Create new teacher accounts"),
    _P.TEACHER_UPDATE: PermissionInfo("Update Teacher", "Update teacher information"),

    _P.BATCH_READ_OWN: PermissionInfo("Read Own Batches", "View batches enrolled in"),
    _P.BATCH_READ_UNDER_TEACHER: PermissionInfo("Read Batches (Under Teacher)", "View assigned batches as teacher"),
    _P.BATCH_READ_ANY: PermissionInfo("Read Any Batch", "View any batch"),
    _P.BATCH_CREATE: PermissionInfo("Create Batch", "Create new batches"),
    _P.BATCH_UPDATE: PermissionInfo("Update Batch", "Update batch information"),
    _P.BATCH_DELETE: PermissionInfo("Delete Batch", "Delete batches"),

    _P.ATTENDANCE_READ_SELF: PermissionInfo("Read Own Attendance", "View own attendance records"),
    _P.ATTENDANCE_READ_UNDER_BATCH: PermissionInfo("Read Attendance (Under Batch)", "View attendance of assigned batches"),
    _P.ATTENDANCE_READ_ANY: PermissionInfo("Read Any Attendance", "View any attendance records"),
    _P.ATTENDANCE_UPDATE_UNDER_BATCH: PermissionInfo("Update Attendance (Under Batch)", "Mark attendance for assigned batches"),
    _P.ATTENDANCE_UPDATE_ANY: PermissionInfo("Update Any Attendance", "Mark attendance for any batch"),

    _P.BATCH_CHANGE_CREATE: PermissionInfo("Create Batch Change Request", "Request to change batch"),
    _P.BATCH_CHANGE_READ_UNDER_BATCH: PermissionInfo("Read Batch Changes (Under Batch)", "View batch change requests for assigned batches"),
    _P.BATCH_CHANGE_READ_ANY: PermissionInfo("Read Any Batch Changes", "View all batch change requests"),
    _P.BATCH_CHANGE_APPROVE_UNDER_BATCH: PermissionInfo("Approve Batch Changes (Under Batch)", "Approve batch changes for assigned batches"),
    _P.BATCH_CHANGE_APPROVE_ANY: PermissionInfo("Approve Any Batch Changes", "Approve any batch change request"),

    _P.ANNOUNCEMENT_READ: PermissionInfo("Read Announcements", "View announcements"),
    _P.ANNOUNCEMENT_CREATE: PermissionInfo("Create Announcement", "Create new announcements"),
    _P.ANNOUNCEMENT_UPDATE: PermissionInfo("Update Announcement", "Update announcements"),
    _P.ANNOUNCEMENT_DELETE: PermissionInfo("Delete Announcement", "Delete announcements"),

    _P.PRACTICE_ACCESS: PermissionInfo("Access Practice Library", "Access practice materials and resources"),

    _P.ZOOM_POST_UNDER_BATCH: PermissionInfo("Post Zoom Link (Under Batch)", "Post Zoom links for assigned batches"),
    _P.ZOOM_POST_ANY: PermissionInfo("Post Any Zoom Link", "Post Zoom links for any batch"),
    _P.ZOOM_VIEW_UNDER_BATCH: PermissionInfo("View Zoom Links (Under Batch)", "View Zoom links for enrolled batches"),
    _P.ZOOM_VIEW_ALL: PermissionInfo("View All Zoom Links", "View all Zoom links"),

    _P.ANALYTICS_VIEW_UNDER_BATCH: PermissionInfo("View Analytics (Under Batch)", "View analytics for assigned batches"),
    _P.ANALYTICS_VIEW_ANY: PermissionInfo("View Any Analytics", "View all analytics"),
    _P.REPORT_GENERATE: PermissionInfo("Generate Reports", "Generate system reports"),

    _P.PAYMENT_READ_SELF: PermissionInfo("Read Own Payments", "View own payment history"),
    _P.PAYMENT_READ_UNDER_BATCH: PermissionInfo("Read Payments (Under Batch)", "View payments for students in assigned batches"),
    _P.PAYMENT_READ_ANY: PermissionInfo("Read Any Payments", "View all payment records"),

    _P.HOLIDAY_READ: PermissionInfo("View Holidays", "View holiday calendar"),
    _P.HOLIDAY_DECLARE_UNDER_BATCH: PermissionInfo("Declare Holidays (Under Batch)", "Declare holidays for assigned batches"),
    _P.HOLIDAY_DECLARE_ANY: PermissionInfo("Declare Any Holidays", "Declare holidays for any batch"),
    _P.SCHEDULE_RESCHEDULE_UNDER_BATCH: PermissionInfo("Reschedule Classes (Under Batch)", "Reschedule classes for assigned batches"),
    _P.SCHEDULE_RESCHEDULE_ANY: PermissionInfo("Reschedule Any Classes", "Reschedule any class"),

    _P.ROLE_ASSIGN: PermissionInfo("Assign Roles", "Assign roles to users"),
    _P.DATABASE_ACCESS: PermissionInfo("Database Access", "Direct database access"),
    _P.SYSTEM_CONFIGURE: PermissionInfo("System Configuration", "Configure system settings"),
})


# Holding any of these lets a caller pass an ownership check on someone
# else's resource.
ACCESS_ANY_PERMISSIONS: frozenset[str] = frozenset({
    _P.STUDENT_READ_ANY.value,
    _P.PROFILE_UPDATE_STUDENT_ANY.value,
    _P.TEACHER_READ_ANY.value,
})


def is_known_permission(name: str) -> bool:
    """Check whether a string is a catalog permission."""
    try:
        PermissionCode(name)
    except ValueError:
        return False
    return True


# ============================================================
# ROLES
# ============================================================

class RoleName(str, Enum):
    """Built-in role names."""

    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    GUEST = "GUEST"


ROLE_DESCRIPTIONS = MappingProxyType({
    RoleName.ADMIN: "Full system access with all permissions",
    RoleName.TEACHER: "Teacher with batch management and student tracking",
    RoleName.STUDENT: "Student with basic access to own data",
    RoleName.GUEST: "Limited read-only access for prospective students",
})

ROLE_DEFAULTS: MappingProxyType[RoleName, frozenset[PermissionCode]] = MappingProxyType({
    RoleName.ADMIN: frozenset(PermissionCode),
    RoleName.TEACHER: frozenset({
        _P.PROFILE_READ_SELF,
        _P.PROFILE_UPDATE_SELF_LIMITED,
        _P.PROFILE_UPDATE_STUDENT_UNDER_BATCH,
        _P.PASSWORD_CHANGE_SELF,
        _P.STUDENT_READ_UNDER_BATCH,
        _P.STUDENT_UPDATE_STATUS_UNDER_BATCH,
        _P.TEACHER_READ_SELF,
        _P.BATCH_READ_UNDER_TEACHER,
        _P.ATTENDANCE_READ_UNDER_BATCH,
        _P.ATTENDANCE_UPDATE_UNDER_BATCH,
        _P.BATCH_CHANGE_READ_UNDER_BATCH,
        _P.BATCH_CHANGE_APPROVE_UNDER_BATCH,
        _P.ANNOUNCEMENT_READ,
        _P.ANNOUNCEMENT_CREATE,
        _P.PRACTICE_ACCESS,
        _P.ZOOM_POST_UNDER_BATCH,
        _P.ZOOM_VIEW_UNDER_BATCH,
        _P.ANALYTICS_VIEW_UNDER_BATCH,
        _P.PAYMENT_READ_UNDER_BATCH,
        _P.HOLIDAY_READ,
        _P.HOLIDAY_DECLARE_UNDER_BATCH,
        _P.SCHEDULE_RESCHEDULE_UNDER_BATCH,
    }),
    RoleName.STUDENT: frozenset({
        _P.PROFILE_READ_SELF,
        _P.PROFILE_UPDATE_SELF_LIMITED,
        _P.PASSWORD_CHANGE_SELF,
        _P.STUDENT_READ_SELF,
        _P.BATCH_READ_OWN,
        _P.ATTENDANCE_READ_SELF,
        _P.BATCH_CHANGE_CREATE,
        _P.ANNOUNCEMENT_READ,
        _P.PRACTICE_ACCESS,
        _P.ZOOM_VIEW_UNDER_BATCH,
        _P.PAYMENT_READ_SELF,
        _P.HOLIDAY_READ,
    }),
    RoleName.GUEST: frozenset({
        _P.PROFILE_READ_SELF,
        _P.ANNOUNCEMENT_READ,
        _P.HOLIDAY_READ,
    }),
})
