"""
Audit trail routes.

Mounted under /admin/system/audit; the admin router applies the role gate.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from conservatory.api.dependencies.services import get_audit_service
from conservatory.core.auth.dependencies import require_permission
from conservatory.core.config import settings
from conservatory.core.permissions import PermissionCode
from conservatory.schemas.audit_log import (
    AuditLogFilter,
    AuditLogPage,
    AuditLogResponse,
    AuditStats,
)
from conservatory.schemas.common import ApiResponse, success_response
from conservatory.services.audit import AuditService
from conservatory.utils.timezone import days_ago

router = APIRouter(
    dependencies=[Depends(require_permission(PermissionCode.SYSTEM_CONFIGURE))],
)

Audit = Annotated[AuditService, Depends(get_audit_service)]


def _split(values: list[str] | None) -> list[str] | None:
    """Accept repeated and comma-separated query values."""
    if not values:
        return None
    return [v.strip() for value in values for v in value.split(",") if v.strip()] or None


@router.get("")
async def query_audit_logs(
    audit: Audit,
    performed_by: UUID | None = Query(None, alias="performedBy"),
    target_model: str | None = Query(None, alias="targetModel"),
    target_id: str | None = Query(None, alias="targetId"),
    action: list[str] | None = Query(None),
    severity: list[str] | None = Query(None),
    from_date: datetime | None = Query(None, alias="fromDate"),
    to_date: datetime | None = Query(None, alias="toDate"),
    page: int = Query(1),
    limit: int = Query(50),
) -> ApiResponse[AuditLogPage]:
    """Filtered, paginated audit entries, newest first."""
    filters = AuditLogFilter(
        performed_by=performed_by,
        target_model=target_model,
        target_id=target_id,
        action=_split(action),
        severity=_split(severity),
        from_date=from_date,
        to_date=to_date,
    )
    result = await audit.query(filters, page=page, limit=limit)
    return success_response(result, "Audit logs retrieved")


@router.get("/stats")
async def audit_stats(
    audit: Audit,
    days: int = Query(settings.audit.stats_window_days, ge=1, le=365),
) -> ApiResponse[AuditStats]:
    stats = await audit.get_stats(days_ago(days))
    return success_response(stats, f"Audit stats for last {days} days")


@router.get("/critical")
async def critical_events(
    audit: Audit,
    days: int = Query(7, ge=1, le=365),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse[list[AuditLogResponse]]:
    logs = await audit.get_critical_events(days_ago(days), limit=limit)
    return success_response(
        [AuditLogResponse.from_log(log) for log in logs],
        "Critical security events",
    )


@router.get("/entity/{model}/{entity_id}")
async def entity_history(
    model: str,
    entity_id: str,
    audit: Audit,
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse[list[AuditLogResponse]]:
    """Change history of one entity."""
    logs = await audit.get_entity_history(model, entity_id, limit=limit)
    return success_response([AuditLogResponse.from_log(log) for log in logs])
