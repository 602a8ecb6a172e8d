"""
Permission catalog routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from conservatory.api.dependencies.services import get_role_service
from conservatory.schemas.common import ApiResponse, success_response
from conservatory.schemas.role import PermissionCatalog, PermissionDetail
from conservatory.services.roles import RoleService

router = APIRouter()

Roles = Annotated[RoleService, Depends(get_role_service)]


@router.get("")
async def list_permissions(service: Roles) -> ApiResponse[PermissionCatalog]:
    """Active permissions, flat and grouped by domain."""
    return success_response(await service.list_permissions())


@router.get("/{name}")
async def get_permission(name: str, service: Roles) -> ApiResponse[PermissionDetail]:
    """One permission and the roles holding it."""
    return success_response(await service.get_permission(name))
