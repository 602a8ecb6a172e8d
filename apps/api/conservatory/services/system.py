"""
System administration: statuses, archiving, bulk user operations and the
permission catalog sync.
"""

from datetime import datetime
from typing import Any, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from conservatory.core.auth.context import AuthContext
from conservatory.core.errors import ValidationError
from conservatory.core.permissions import PERMISSION_DETAILS, PermissionCode
from conservatory.models.audit_log import AuditAction, AuditSeverity
from conservatory.models.role import Permission, Role
from conservatory.models.school import Announcement, Attendance, Batch, Holiday, Payment
from conservatory.models.user import Status, StatusName, User
from conservatory.schemas.audit_log import AuditEntry
from conservatory.schemas.system import (
    ArchivedStats,
    ArchiveResult,
    BulkArchiveResult,
    BulkStatusResult,
    RestoreResult,
    StatusResponse,
    SyncResult,
    SystemHealth,
)
from conservatory.services.audit import AuditService
from conservatory.services.roles import system_entry
from conservatory.utils.health import (
    check_audit_writer,
    check_database,
    overall_status,
    uptime_seconds,
)
from conservatory.utils.timezone import to_utc, utc_now

logger = structlog.get_logger()


# Models whose old records can be archived by date
ARCHIVABLE_MODELS = {
    "attendance": Attendance,
    "payments": Payment,
    "announcements": Announcement,
}

# Models whose archived records can be restored by id
RESTORABLE_MODELS = {
    "users": User,
    "batches": Batch,
    "attendance": Attendance,
    "payments": Payment,
    "announcements": Announcement,
    "holidays": Holiday,
}


class SystemService:
    """System admin service."""

    def __init__(self, db: AsyncSession, audit: AuditService):
        self.db = db
        self.audit = audit

    def _submit(self, actor: Optional[AuthContext], **fields: Any) -> None:
        entry = AuditEntry.by(actor, **fields) if actor else system_entry(**fields)
        self.audit.submit(entry)

    async def _count(self, model, *conditions) -> int:
        stmt = select(func.count()).select_from(model).where(*conditions)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    # ============================================================
    # HEALTH
    # ============================================================

    async def get_system_health(self) -> SystemHealth:
        """Live record counts, database status and uptime."""
        components = [
            await check_database(self.db),
            check_audit_writer(self.audit.pending, self.audit.failures.total),
        ]

        counts = {"roles": await self._count(Role, Role.is_active.is_(True))}
        for key, model in (
            ("users", User),
            ("batches", Batch),
            ("attendance", Attendance),
            ("payments", Payment),
            ("announcements", Announcement),
        ):
            counts[key] = await self._count(model, model.deleted_at.is_(None))

        return SystemHealth(
            status=overall_status(components).value,
            uptime_seconds=uptime_seconds(),
            counts=counts,
            components={c.name: c.to_dict() for c in components},
            timestamp=utc_now(),
        )

    # ============================================================
    # STATUSES
    # ============================================================

    async def list_statuses(self) -> list[StatusResponse]:
        result = await self.db.execute(select(Status).order_by(Status.name))
        return [StatusResponse.model_validate(s) for s in result.scalars().all()]

    async def create_status(
        self,
        name: str,
        actor: Optional[AuthContext] = None,
    ) -> StatusResponse:
        """
        Add an allowed status to the catalog.

        Raises:
            ValidationError: If the name is not allowed or already stored
        """
        name = name.strip().upper()
        allowed = [s.value for s in StatusName]
        if name not in allowed:
            raise ValidationError(
                f"Invalid status name: {name}",
                allowed=allowed,
            )

        result = await self.db.execute(select(Status).where(Status.name == name))
        if result.scalar_one_or_none():
            raise ValidationError("Status already exists")

        status = Status(name=name)
        self.db.add(status)
        await self.db.flush()

        self._submit(
            actor,
            action=AuditAction.SYSTEM_CONFIG_CHANGED,
            target_model="Status",
            target_id=str(status.id),
            description=f"Created status {name}",
            new_state={"name": name},
        )
        return StatusResponse.model_validate(status)

    # ============================================================
    # ARCHIVING
    # ============================================================

    async def archive_old_records(
        self,
        model: str,
        before_date: datetime,
        actor: Optional[AuthContext] = None,
    ) -> ArchiveResult:
        """
        Archive live records of `model` older than `before_date`.

        Attendance is aged by the class date; other models by creation time.
        """
        target = ARCHIVABLE_MODELS.get(model)
        if target is None:
            raise ValidationError(
                f"Model {model} cannot be archived",
                allowed=sorted(ARCHIVABLE_MODELS),
            )

        cutoff = to_utc(before_date)
        if target is Attendance:
            older = Attendance.class_date < cutoff.date()
        else:
            older = target.created_at < cutoff

        archived_at = utc_now()
        stmt = (
            update(target)
            .where(
                older,
                target.deleted_at.is_(None),
            )
            .values(
                deleted_at=archived_at,
                deleted_by=actor.user_id if actor else None,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        archived = result.rowcount or 0

        logger.info("Records archived", model=model, archived=archived)
        self._submit(
            actor,
            action=AuditAction.BULK_OPERATION,
            severity=AuditSeverity.WARNING,
            target_model=target.__name__,
            description=f"Archived {archived} {model} records older than {before_date.isoformat()}",
            metadata={"model": model, "archived": archived, "beforeDate": before_date.isoformat()},
        )
        return ArchiveResult(archived=archived, model=model, archived_at=archived_at)

    async def get_archived_stats(self) -> ArchivedStats:
        """Archived record counts per model."""
        counts = {
            key: await self._count(model, model.deleted_at.is_not(None))
            for key, model in RESTORABLE_MODELS.items()
        }
        return ArchivedStats(models=counts, total=sum(counts.values()))

    async def restore_archived_records(
        self,
        model: str,
        ids: Sequence[UUID],
        actor: Optional[AuthContext] = None,
    ) -> RestoreResult:
        """Clear the archive marker on the given records."""
        target = RESTORABLE_MODELS.get(model)
        if target is None:
            raise ValidationError(
                f"Model {model} cannot be restored",
                allowed=sorted(RESTORABLE_MODELS),
            )

        requested = set(ids)
        stmt = (
            update(target)
            .where(target.id.in_(list(requested)), target.deleted_at.is_not(None))
            .values(deleted_at=None, deleted_by=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        restored = result.rowcount or 0

        self._submit(
            actor,
            action=AuditAction.USER_RESTORED if target is User else AuditAction.BULK_OPERATION,
            target_model=target.__name__,
            description=f"Restored {restored} of {len(requested)} {model} records",
            metadata={"model": model, "ids": sorted(str(i) for i in requested), "restored": restored},
        )
        return RestoreResult(restored=restored, requested=len(requested), model=model)

    # ============================================================
    # BULK USER OPERATIONS
    # ============================================================

    async def bulk_update_user_status(
        self,
        user_ids: Sequence[UUID],
        status_id: UUID,
        actor: Optional[AuthContext] = None,
    ) -> BulkStatusResult:
        """
        Set the status of every live user in `user_ids`.

        Raises:
            ValidationError: If the status does not exist
        """
        status = await self.db.get(Status, status_id)
        if not status:
            raise ValidationError("Invalid status ID")

        requested = set(user_ids)
        stmt = (
            update(User)
            .where(User.id.in_(list(requested)), User.deleted_at.is_(None))
            .values(status_id=status.id, updated_by=actor.user_id if actor else None)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        updated = result.rowcount or 0

        self._submit(
            actor,
            action=AuditAction.USER_STATUS_CHANGED,
            severity=AuditSeverity.WARNING,
            target_model="User",
            description=f"Set status {status.name} on {updated} of {len(requested)} users",
            new_state={"status": status.name},
            metadata={"userIds": sorted(str(i) for i in requested), "updated": updated},
        )
        return BulkStatusResult(updated=updated, requested=len(requested))

    async def bulk_archive_users(
        self,
        user_ids: Sequence[UUID],
        actor: Optional[AuthContext] = None,
    ) -> BulkArchiveResult:
        """Archive live users and invalidate their tokens."""
        requested = set(user_ids)
        stmt = (
            update(User)
            .where(User.id.in_(list(requested)), User.deleted_at.is_(None))
            .values(
                deleted_at=utc_now(),
                deleted_by=actor.user_id if actor else None,
                token_version=User.token_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        archived = result.rowcount or 0

        self._submit(
            actor,
            action=AuditAction.USER_ARCHIVED,
            severity=AuditSeverity.CRITICAL,
            target_model="User",
            description=f"Archived {archived} of {len(requested)} users",
            metadata={"userIds": sorted(str(i) for i in requested), "archived": archived},
        )
        return BulkArchiveResult(archived=archived, requested=len(requested))

    # ============================================================
    # PERMISSION CATALOG
    # ============================================================

    async def sync_permissions(self, actor: Optional[AuthContext] = None) -> SyncResult:
        """
        Persist catalog permissions missing from storage.

        Existing rows are left untouched.
        """
        result = await self.db.execute(select(Permission.name))
        persisted = set(result.scalars().all())

        missing = [code for code in PermissionCode if code.value not in persisted]
        self.db.add_all([
            Permission(
                name=code.value,
                label=PERMISSION_DETAILS[code].label,
                category=code.domain,
                description=PERMISSION_DETAILS[code].description,
            )
            for code in missing
        ])
        if missing:
            await self.db.flush()

        created = len(missing)
        existing = len(PermissionCode) - created
        logger.info("Permissions synced", created=created, existing=existing)

        if created and actor:
            self._submit(
                actor,
                action=AuditAction.SYSTEM_CONFIG_CHANGED,
                target_model="Permission",
                description=f"Synced permissions: {created} created, {existing} already exist",
                metadata={"created": [code.value for code in missing]},
            )
        return SyncResult(created=created, existing=existing)


