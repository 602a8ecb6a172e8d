"""
Tests for system administration.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from conservatory.core.auth.context import AuthContext
from conservatory.core.errors import ValidationError
from conservatory.core.permissions import PermissionCode
from conservatory.models.audit_log import AuditAction
from conservatory.models.role import Permission
from conservatory.models.school import Announcement, Attendance, Batch, Payment
from conservatory.models.user import User
from conservatory.schemas.audit_log import AuditEntry
from conservatory.services.system import SystemService
from conservatory.utils.timezone import utc_now


@pytest.fixture
def actor(admin_user) -> AuthContext:
    return AuthContext.build(admin_user.id, "ADMIN", [PermissionCode.SYSTEM_CONFIGURE])


async def reload_user(db, user_id) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


# ============ Permission sync ============


@pytest.mark.asyncio
async def test_sync_permissions_twice(system_service: SystemService, db):
    total = len(PermissionCode)

    first = await system_service.sync_permissions()
    second = await system_service.sync_permissions()

    assert (first.created, first.existing) == (total, 0)
    assert (second.created, second.existing) == (0, total)

    result = await db.execute(select(Permission).where(Permission.name == "ROLE:ASSIGN:ANY"))
    permission = result.scalar_one()
    assert permission.category == "ROLE"
    assert permission.label


@pytest.mark.asyncio
async def test_sync_permissions_fills_gaps(system_service: SystemService, db):
    db.add(Permission(name="ROLE:ASSIGN:ANY", label="Custom label", category="ROLE"))
    await db.flush()

    result = await system_service.sync_permissions()

    assert result.existing == 1
    assert result.created == len(PermissionCode) - 1

    kept = await db.execute(select(Permission.label).where(Permission.name == "ROLE:ASSIGN:ANY"))
    assert kept.scalar_one() == "Custom label"


@pytest.mark.asyncio
async def test_sync_permissions_audited_with_actor(system_service: SystemService, audit):
    actor = AuthContext.build(uuid4(), "ADMIN")

    await system_service.sync_permissions(actor=actor)
    await audit.drain()
    await system_service.sync_permissions(actor=actor)
    await audit.drain()

    page = await audit.query()
    assert [log.action for log in page.logs] == ["SYSTEM_CONFIG_CHANGED"]


# ============ Statuses ============


@pytest.mark.asyncio
async def test_create_status(system_service: SystemService, audit, actor):
    status = await system_service.create_status(" hold ", actor=actor)
    await audit.drain()
    assert status.name == "HOLD"

    await system_service.create_status("ACTIVE", actor=actor)
    await audit.drain()
    assert [s.name for s in await system_service.list_statuses()] == ["ACTIVE", "HOLD"]

    history = await audit.get_entity_history("Status", status.id)
    assert [log.action for log in history] == ["SYSTEM_CONFIG_CHANGED"]


@pytest.mark.asyncio
async def test_create_duplicate_status(system_service: SystemService, status_factory):
    await status_factory.create("ACTIVE")

    with pytest.raises(ValidationError) as exc_info:
        await system_service.create_status("ACTIVE")
    assert exc_info.value.message == "Status already exists"


@pytest.mark.asyncio
async def test_create_unknown_status(system_service: SystemService):
    with pytest.raises(ValidationError) as exc_info:
        await system_service.create_status("VACATIONING")
    assert "ACTIVE SOON" in exc_info.value.context["allowed"]


# ============ Bulk user operations ============


@pytest.mark.asyncio
async def test_bulk_status_skips_archived(system_service: SystemService, db, audit, user_factory, status_factory, actor):
    hold = await status_factory.create("HOLD")
    live = [await user_factory.create(), await user_factory.create()]
    archived = await user_factory.create(archived=True)

    result = await system_service.bulk_update_user_status(
        [u.id for u in live] + [archived.id],
        hold.id,
        actor=actor,
    )
    await audit.drain()

    assert (result.updated, result.requested) == (2, 3)
    assert result.updated < result.requested
    for user in live:
        assert (await reload_user(db, user.id)).status_id == hold.id
    assert (await reload_user(db, archived.id)).status_id is None

    logs = (await audit.query()).logs
    assert [(log.action, log.severity) for log in logs] == [("USER_STATUS_CHANGED", "WARNING")]


@pytest.mark.asyncio
async def test_bulk_status_unknown_status(system_service: SystemService, user_factory):
    user = await user_factory.create()

    with pytest.raises(ValidationError) as exc_info:
        await system_service.bulk_update_user_status([user.id], uuid4())
    assert exc_info.value.message == "Invalid status ID"


@pytest.mark.asyncio
async def test_bulk_archive_bumps_token_version(system_service: SystemService, db, audit, user_factory, actor):
    users = [await user_factory.create(), await user_factory.create()]

    result = await system_service.bulk_archive_users([u.id for u in users] + [uuid4()], actor=actor)
    await audit.drain()

    assert (result.archived, result.requested) == (2, 3)
    for user in users:
        reloaded = await reload_user(db, user.id)
        assert reloaded.is_deleted
        assert reloaded.deleted_by == actor.user_id
        assert reloaded.token_version == 1

    logs = (await audit.query()).logs
    assert [(log.action, log.severity) for log in logs] == [("USER_ARCHIVED", "CRITICAL")]


# ============ Archiving ============


async def seed_attendance(db, user_factory) -> tuple[Attendance, Attendance]:
    student = await user_factory.create()
    batch = Batch(name="Piano Basics")
    db.add(batch)
    await db.flush()

    old = Attendance(
        batch_id=batch.id,
        student_id=student.id,
        class_date=date(2020, 1, 6),
        created_at=utc_now() - timedelta(days=400),
    )
    recent = Attendance(batch_id=batch.id, student_id=student.id, class_date=date.today())
    db.add_all([old, recent])
    await db.commit()
    return old, recent


@pytest.mark.asyncio
async def test_archive_old_records(system_service: SystemService, db, audit, user_factory, actor):
    old, recent = await seed_attendance(db, user_factory)

    result = await system_service.archive_old_records(
        "attendance",
        utc_now() - timedelta(days=365),
        actor=actor,
    )
    await audit.drain()

    assert result.archived == 1
    assert result.model == "attendance"

    stats = await system_service.get_archived_stats()
    assert stats.models["attendance"] == 1
    assert stats.total == 1

    logs = (await audit.query()).logs
    assert [(log.action, log.severity) for log in logs] == [("BULK_OPERATION", "WARNING")]


@pytest.mark.asyncio
async def test_archive_attendance_by_class_date(system_service: SystemService, db, audit, user_factory):
    student = await user_factory.create()
    batch = Batch(name="Violin Intermediate")
    db.add(batch)
    await db.flush()

    today = utc_now().date()
    # Recorded today for a class long ago
    late_entry = Attendance(batch_id=batch.id, student_id=student.id, class_date=today - timedelta(days=400))
    # Recorded long ago for a class still inside the window
    early_entry = Attendance(
        batch_id=batch.id,
        student_id=student.id,
        class_date=today - timedelta(days=5),
        created_at=utc_now() - timedelta(days=400),
    )
    db.add_all([late_entry, early_entry])
    await db.commit()

    result = await system_service.archive_old_records("attendance", utc_now() - timedelta(days=30))
    await audit.drain()

    assert result.archived == 1
    archived = await db.execute(
        select(Attendance.id)
        .where(Attendance.deleted_at.is_not(None))
        .execution_options(populate_existing=True)
    )
    assert archived.scalars().all() == [late_entry.id]


@pytest.mark.asyncio
async def test_archive_rejects_unknown_model(system_service: SystemService):
    with pytest.raises(ValidationError) as exc_info:
        await system_service.archive_old_records("users", utc_now())
    assert exc_info.value.context["allowed"] == ["announcements", "attendance", "payments"]


@pytest.mark.asyncio
async def test_archive_payments_and_announcements(system_service: SystemService, db, audit, user_factory):
    student = await user_factory.create()
    long_ago = utc_now() - timedelta(days=30)
    db.add_all([
        Payment(student_id=student.id, amount=Decimal("120.00"), created_at=long_ago),
        Announcement(title="Recital", body="Friday", created_at=long_ago),
        Announcement(title="Closed", body="Monday", created_at=long_ago),
    ])
    await db.commit()

    cutoff = utc_now() - timedelta(days=1)
    archived = []
    for model in ("payments", "announcements", "announcements"):
        archived.append((await system_service.archive_old_records(model, cutoff)).archived)
        await audit.drain()

    assert archived == [1, 2, 0]


@pytest.mark.asyncio
async def test_restore_users(system_service: SystemService, db, audit, user_factory, actor):
    archived = await user_factory.create(archived=True)
    live = await user_factory.create()

    result = await system_service.restore_archived_records("users", [archived.id, live.id], actor=actor)
    await audit.drain()

    assert (result.restored, result.requested) == (1, 2)
    assert not (await reload_user(db, archived.id)).is_deleted

    logs = (await audit.query()).logs
    assert [log.action for log in logs] == ["USER_RESTORED"]


@pytest.mark.asyncio
async def test_restore_other_models(system_service: SystemService, db, audit, user_factory):
    old, _ = await seed_attendance(db, user_factory)
    await system_service.archive_old_records("attendance", utc_now() - timedelta(days=1))
    await audit.drain()

    result = await system_service.restore_archived_records("attendance", [old.id])
    await audit.drain()

    assert result.restored == 1
    assert (await system_service.get_archived_stats()).models["attendance"] == 0
    assert [log.action for log in (await audit.query()).logs] == ["BULK_OPERATION", "BULK_OPERATION"]


@pytest.mark.asyncio
async def test_restore_rejects_unknown_model(system_service: SystemService):
    with pytest.raises(ValidationError):
        await system_service.restore_archived_records("roles", [uuid4()])


# ============ Health ============


@pytest.mark.asyncio
async def test_system_health(system_service: SystemService, user_factory):
    await user_factory.create()
    await user_factory.create(archived=True)

    health = await system_service.get_system_health()

    assert health.status in ("healthy", "degraded")
    assert health.counts["users"] == 1
    assert health.counts["roles"] == 4
    assert health.components["database"]["status"] == health.status
    assert health.uptime_seconds >= 0


@pytest.mark.asyncio
async def test_system_health_degraded_by_audit_failures(system_service: SystemService, audit):
    entry = AuditEntry(
        action=AuditAction.USER_UPDATED,
        performer_role="ADMIN",
        target_model="User",
        description="lost write",
    )
    audit.failures.record(entry, RuntimeError("connection reset"))

    health = await system_service.get_system_health()

    assert health.status == "degraded"
    assert health.components["audit"]["failed"] == 1
