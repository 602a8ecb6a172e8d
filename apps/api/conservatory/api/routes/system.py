"""
System administration routes.

Mounted under /admin/system; the admin router applies the role gate.
Every route requires SYSTEM:CONFIGURE:ANY except the bulk status update,
which requires STUDENT:UPDATE_STATUS:ANY.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from conservatory.api.dependencies.services import get_system_service
from conservatory.core.auth.context import AuthContext
from conservatory.core.auth.dependencies import require_permission
from conservatory.core.permissions import PermissionCode
from conservatory.schemas.common import ApiResponse, success_response
from conservatory.schemas.system import (
    ArchivedStats,
    ArchiveRequest,
    ArchiveResult,
    BulkArchiveRequest,
    BulkArchiveResult,
    BulkStatusRequest,
    BulkStatusResult,
    RestoreRequest,
    RestoreResult,
    StatusCreate,
    StatusResponse,
    SyncResult,
    SystemHealth,
)
from conservatory.services.system import SystemService

router = APIRouter()

System = Annotated[SystemService, Depends(get_system_service)]

Configurer = Annotated[AuthContext, Depends(require_permission(PermissionCode.SYSTEM_CONFIGURE))]
StatusUpdater = Annotated[
    AuthContext,
    Depends(require_permission(PermissionCode.STUDENT_UPDATE_STATUS_ANY)),
]


@router.get("/health")
async def system_health(service: System, _: Configurer) -> ApiResponse[SystemHealth]:
    """Record counts, database status and uptime."""
    return success_response(await service.get_system_health())


# ============================================================
# STATUSES
# ============================================================

@router.get("/statuses")
async def list_statuses(service: System, _: Configurer) -> ApiResponse[list[StatusResponse]]:
    return success_response(await service.list_statuses())


@router.post("/statuses", status_code=201)
async def create_status(
    data: StatusCreate,
    service: System,
    ctx: Configurer,
) -> ApiResponse[StatusResponse]:
    status = await service.create_status(data.name, actor=ctx)
    return success_response(status, "Status created")


# ============================================================
# ARCHIVING
# ============================================================

@router.get("/archived")
async def archived_stats(service: System, _: Configurer) -> ApiResponse[ArchivedStats]:
    """Archived record counts per model."""
    return success_response(await service.get_archived_stats())


@router.post("/archive/{model}")
async def archive_old_records(
    model: str,
    data: ArchiveRequest,
    service: System,
    ctx: Configurer,
) -> ApiResponse[ArchiveResult]:
    """Archive records of one model created before `beforeDate`."""
    result = await service.archive_old_records(model, data.before_date, actor=ctx)
    return success_response(result, f"Archived {result.archived} {model} records")


@router.post("/restore")
async def restore_records(
    data: RestoreRequest,
    service: System,
    ctx: Configurer,
) -> ApiResponse[RestoreResult]:
    result = await service.restore_archived_records(data.model, data.ids, actor=ctx)
    return success_response(result, f"Restored {result.restored} {data.model} records")


# ============================================================
# BULK USER OPERATIONS
# ============================================================

@router.post("/bulk/status")
async def bulk_update_status(
    data: BulkStatusRequest,
    service: System,
    ctx: StatusUpdater,
) -> ApiResponse[BulkStatusResult]:
    result = await service.bulk_update_user_status(data.user_ids, data.status_id, actor=ctx)
    return success_response(result, f"Updated {result.updated} users")


@router.post("/bulk/archive")
async def bulk_archive_users(
    data: BulkArchiveRequest,
    service: System,
    ctx: Configurer,
) -> ApiResponse[BulkArchiveResult]:
    result = await service.bulk_archive_users(data.user_ids, actor=ctx)
    return success_response(result, f"Archived {result.archived} users")


# ============================================================
# PERMISSION CATALOG
# ============================================================

@router.post("/sync-permissions")
async def sync_permissions(service: System, ctx: Configurer) -> ApiResponse[SyncResult]:
    """Persist catalog permissions missing from storage."""
    result = await service.sync_permissions(actor=ctx)
    return success_response(
        result,
        f"Synced permissions: {result.created} created, {result.existing} already exist",
    )
