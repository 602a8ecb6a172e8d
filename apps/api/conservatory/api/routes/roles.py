"""
Role administration routes.

Mounted under /admin/roles; the admin router applies the role gate.
Permission mutations additionally require ROLE:ASSIGN:ANY.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from conservatory.api.dependencies.services import get_role_service
from conservatory.core.auth.context import AuthContext
from conservatory.core.auth.dependencies import require_permission
from conservatory.core.permissions import PermissionCode
from conservatory.schemas.common import ApiResponse, success_response
from conservatory.schemas.role import (
    RoleDetail,
    RolePermissionAdd,
    RolePermissionsReplace,
    RoleStats,
    RoleSummary,
)
from conservatory.services.roles import RoleService

router = APIRouter()

Roles = Annotated[RoleService, Depends(get_role_service)]

# Caller allowed to change role permissions
Assigner = Annotated[AuthContext, Depends(require_permission(PermissionCode.ROLE_ASSIGN))]


@router.get("")
async def list_roles(service: Roles) -> ApiResponse[list[RoleSummary]]:
    """List active roles."""
    return success_response(await service.list_roles())


@router.get("/stats")
async def role_stats(service: Roles) -> ApiResponse[RoleStats]:
    """Users per role."""
    return success_response(await service.get_role_stats())


@router.get("/name/{name}")
async def get_role_by_name(name: str, service: Roles) -> ApiResponse[RoleDetail]:
    return success_response(await service.get_role_by_name(name))


@router.get("/{role_id}")
async def get_role(role_id: UUID, service: Roles) -> ApiResponse[RoleDetail]:
    return success_response(await service.get_role(role_id))


@router.put("/{role_id}/permissions")
async def replace_role_permissions(
    role_id: UUID,
    data: RolePermissionsReplace,
    service: Roles,
    ctx: Assigner,
) -> ApiResponse[RoleSummary]:
    """Replace the role's whole permission set."""
    role = await service.replace_permissions(role_id, data.permissions, actor=ctx)
    return success_response(role, "Role permissions updated")


@router.post("/{role_id}/permissions")
async def add_role_permission(
    role_id: UUID,
    data: RolePermissionAdd,
    service: Roles,
    ctx: Assigner,
) -> ApiResponse[RoleSummary]:
    role = await service.add_permission(role_id, data.permission, actor=ctx)
    return success_response(role, "Permission added to role")


@router.delete("/{role_id}/permissions/{permission}")
async def remove_role_permission(
    role_id: UUID,
    permission: str,
    service: Roles,
    ctx: Assigner,
) -> ApiResponse[RoleSummary]:
    role = await service.remove_permission(role_id, permission, actor=ctx)
    return success_response(role, "Permission removed from role")
