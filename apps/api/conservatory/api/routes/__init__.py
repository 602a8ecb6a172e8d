"""
API routes aggregation.
"""

from fastapi import APIRouter, Depends

from conservatory.core.auth.dependencies import require_role
from conservatory.core.config import settings

from .audit import router as audit_router
from .auth import router as auth_router
from .permissions import router as permissions_router
from .roles import router as roles_router
from .system import router as system_router
from .users import router as users_router

# Everything under /admin requires the admin role
admin_router = APIRouter(dependencies=[Depends(require_role(settings.auth.admin_role))])

admin_router.include_router(audit_router, prefix="/system/audit", tags=["audit"])
admin_router.include_router(system_router, prefix="/system", tags=["system"])
admin_router.include_router(roles_router, prefix="/roles", tags=["roles"])
admin_router.include_router(permissions_router, prefix="/permissions", tags=["permissions"])

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(users_router, prefix="/users", tags=["users"])
router.include_router(admin_router, prefix="/admin")
