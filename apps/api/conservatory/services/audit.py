"""
Audit trail service.

Writes are best-effort: a failed write is recorded in the AuditFailureSink
and logged, never raised to the caller. Business code normally calls
submit(), which schedules the write and returns immediately.

Reads (query, history, stats) run their independent sub-queries
concurrently, each on its own session.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence, Union
from uuid import UUID

import structlog
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from conservatory.core.config import settings
from conservatory.core.errors import ValidationError
from conservatory.models.audit_log import AuditLog, AuditSeverity
from conservatory.models.database import async_session_factory
from conservatory.schemas.audit_log import (
    AuditEntry,
    AuditLogFilter,
    AuditLogPage,
    AuditLogResponse,
    AuditStats,
    RequestMeta,
)
from conservatory.utils.context import get_request_context
from conservatory.utils.pagination import OffsetParams, page_count
from conservatory.utils.timezone import to_utc, utc_now

logger = structlog.get_logger()


# ============================================================
# FAILURE SINK
# ============================================================

@dataclass
class AuditFailure:
    """One audit entry that could not be stored."""
    action: str
    target_model: str
    target_id: Optional[str]
    error: str
    failed_at: datetime = field(default_factory=utc_now)


class AuditFailureSink:
    """
    Bounded in-memory record of failed audit writes.

    Oldest failures are dropped once `maxlen` is reached; `total` keeps
    counting.
    """

    def __init__(self, maxlen: int = 100):
        self._failures: deque[AuditFailure] = deque(maxlen=maxlen)
        self.total = 0

    def record(self, entry: AuditEntry, exc: BaseException) -> AuditFailure:
        failure = AuditFailure(
            action=entry.action.value,
            target_model=entry.target_model,
            target_id=entry.target_id,
            error=f"{type(exc).__name__}: {exc}",
        )
        self._failures.append(failure)
        self.total += 1
        logger.error(
            "audit_write_failed",
            action=failure.action,
            target_model=failure.target_model,
            target_id=failure.target_id,
            error=failure.error,
        )
        return failure

    @property
    def failures(self) -> list[AuditFailure]:
        return list(self._failures)

    def __len__(self) -> int:
        return len(self._failures)


def _as_list(value: Union[str, Sequence[str], None]) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        values = [value]
    else:
        values = list(value)
    values = [str(getattr(v, "value", v)) for v in values]
    return values or None


class AuditService:
    """Service for writing and querying the audit trail."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        failure_sink: AuditFailureSink | None = None,
    ):
        self.session_factory = session_factory
        # An empty sink is falsy (it defines __len__)
        if failure_sink is None:
            failure_sink = AuditFailureSink(settings.audit.failure_sink_size)
        self.failures = failure_sink
        self._pending: set[asyncio.Task] = set()

    # ============================================================
    # WRITES
    # ============================================================

    def _build(self, entry: AuditEntry) -> AuditLog:
        meta = entry.request_context
        if meta is None:
            ctx = get_request_context()
            if ctx:
                meta = RequestMeta(
                    request_id=ctx.request_id,
                    ip=ctx.client_ip,
                    user_agent=ctx.user_agent,
                )
        meta = meta or RequestMeta()

        return AuditLog(
            action=entry.action.value,
            severity=entry.severity.value,
            performed_by=entry.performed_by,
            performer_role=entry.performer_role,
            target_model=entry.target_model,
            target_id=entry.target_id,
            description=entry.description,
            previous_state=entry.previous_state,
            new_state=entry.new_state,
            extra_data=entry.metadata,
            request_id=meta.request_id,
            ip_address=meta.ip,
            user_agent=meta.user_agent,
            created_at=utc_now(),
        )

    async def log(self, entry: AuditEntry) -> Optional[AuditLog]:
        """
        Store an audit entry.

        Never raises on storage failure; returns None instead and records
        the failure in the sink.
        """
        try:
            row = self._build(entry)
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
        except Exception as exc:
            self.failures.record(entry, exc)
            return None

        logger.info(
            "Audit log created",
            action=row.action,
            severity=row.severity,
            target_model=row.target_model,
            target_id=row.target_id,
            performed_by=str(row.performed_by) if row.performed_by else None,
        )
        return row

    async def log_warning(self, entry: AuditEntry) -> Optional[AuditLog]:
        return await self.log(entry.model_copy(update={"severity": AuditSeverity.WARNING}))

    async def log_critical(self, entry: AuditEntry) -> Optional[AuditLog]:
        return await self.log(entry.model_copy(update={"severity": AuditSeverity.CRITICAL}))

    def submit(self, entry: AuditEntry) -> asyncio.Task:
        """
        Schedule an audit write without waiting for it.

        The task inherits the caller's context, so request metadata is
        still available when it runs.
        """
        task = asyncio.get_running_loop().create_task(self.log(entry))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending(self) -> int:
        return len(self._pending)

    # ============================================================
    # READS
    # ============================================================

    async def _scalars(self, stmt: Select) -> list[AuditLog]:
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def _scalar(self, stmt: Select) -> int:
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one()

    async def _grouped(self, column, conditions: Iterable) -> dict[str, int]:
        stmt = (
            select(column, func.count())
            .where(*conditions)
            .group_by(column)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return {key: count for key, count in result.all() if key is not None}

    @staticmethod
    def _newest_first(stmt: Select) -> Select:
        return stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())

    def _conditions(self, filters: AuditLogFilter | None) -> list:
        """Build the match predicate; absent filters add nothing."""
        conditions = []
        if filters is None:
            return conditions

        if filters.performed_by:
            conditions.append(AuditLog.performed_by == filters.performed_by)
        if filters.target_model:
            conditions.append(AuditLog.target_model == filters.target_model)
        if filters.target_id:
            conditions.append(AuditLog.target_id == str(filters.target_id))

        actions = _as_list(filters.action)
        if actions:
            conditions.append(AuditLog.action.in_(actions))

        severities = _as_list(filters.severity)
        if severities:
            conditions.append(AuditLog.severity.in_(severities))

        if filters.from_date:
            conditions.append(AuditLog.created_at >= to_utc(filters.from_date))
        if filters.to_date:
            conditions.append(AuditLog.created_at <= to_utc(filters.to_date))

        return conditions

    async def query(
        self,
        filters: AuditLogFilter | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> AuditLogPage:
        """
        Filtered, paginated audit entries, newest first.

        Returns total match count and ceil(total / limit) pages.
        """
        limit = limit or settings.audit.default_page_size
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive integers")
        params = OffsetParams(page=page, limit=min(limit, settings.audit.max_page_size))

        conditions = self._conditions(filters)
        page_stmt = (
            self._newest_first(select(AuditLog).where(*conditions))
            .offset(params.offset)
            .limit(params.limit)
        )
        count_stmt = select(func.count()).select_from(AuditLog).where(*conditions)

        logs, total = await asyncio.gather(
            self._scalars(page_stmt),
            self._scalar(count_stmt),
        )

        return AuditLogPage(
            logs=[AuditLogResponse.from_log(log) for log in logs],
            total=total,
            page=params.page,
            limit=params.limit,
            total_pages=page_count(total, params.limit),
        )

    async def get_entity_history(
        self,
        model: str,
        entity_id: Any,
        limit: int | None = None,
    ) -> list[AuditLog]:
        """All entries for one target entity, newest first."""
        stmt = self._newest_first(
            select(AuditLog).where(
                AuditLog.target_model == model,
                AuditLog.target_id == str(entity_id),
            )
        ).limit(limit or settings.audit.history_limit)
        return await self._scalars(stmt)

    async def get_user_actions(
        self,
        user_id: UUID,
        from_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[AuditLog]:
        """Entries performed by one user, optionally since `from_date`."""
        stmt = select(AuditLog).where(AuditLog.performed_by == user_id)
        if from_date:
            stmt = stmt.where(AuditLog.created_at >= to_utc(from_date))
        stmt = self._newest_first(stmt).limit(limit or settings.audit.history_limit)
        return await self._scalars(stmt)

    async def get_critical_events(
        self,
        from_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[AuditLog]:
        """CRITICAL entries, optionally since `from_date`."""
        stmt = select(AuditLog).where(AuditLog.severity == AuditSeverity.CRITICAL.value)
        if from_date:
            stmt = stmt.where(AuditLog.created_at >= to_utc(from_date))
        stmt = self._newest_first(stmt).limit(limit or settings.audit.history_limit)
        return await self._scalars(stmt)

    async def get_stats(self, from_date: datetime) -> AuditStats:
        """Total since `from_date` with breakdowns by action, severity and model."""
        window = [AuditLog.created_at >= to_utc(from_date)]

        total, by_action, by_severity, by_model = await asyncio.gather(
            self._scalar(select(func.count()).select_from(AuditLog).where(*window)),
            self._grouped(AuditLog.action, window),
            self._grouped(AuditLog.severity, window),
            self._grouped(AuditLog.target_model, window),
        )

        return AuditStats(
            total=total,
            by_action=by_action,
            by_severity=by_severity,
            by_model=by_model,
        )


# Process-wide instance; owns the in-flight write tasks and failure sink
audit_service = AuditService(async_session_factory)
