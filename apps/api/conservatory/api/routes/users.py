"""
User routes.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from conservatory.api.dependencies.services import get_audit_service
from conservatory.core.auth.dependencies import require_ownership
from conservatory.schemas.audit_log import AuditLogResponse
from conservatory.schemas.common import ApiResponse, success_response
from conservatory.services.audit import AuditService

router = APIRouter()


@router.get(
    "/{user_id}/activity",
    dependencies=[Depends(require_ownership("user_id"))],
)
async def user_activity(
    user_id: UUID,
    audit: Annotated[AuditService, Depends(get_audit_service)],
    from_date: datetime | None = Query(None, alias="fromDate"),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse[list[AuditLogResponse]]:
    """Audit entries performed by the user, newest first."""
    logs = await audit.get_user_actions(user_id, from_date=from_date, limit=limit)
    return success_response([AuditLogResponse.from_log(log) for log in logs])
