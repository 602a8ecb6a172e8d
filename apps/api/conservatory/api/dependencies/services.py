"""
Service dependencies.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from conservatory.services.audit import AuditService, audit_service
from conservatory.services.auth import AuthService
from conservatory.services.roles import RoleService
from conservatory.services.system import SystemService


def get_audit_service() -> AuditService:
    """Get the process-wide audit service."""
    return audit_service


async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
) -> AuthService:
    """Get auth service instance."""
    return AuthService(db, audit)


async def get_role_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
) -> RoleService:
    """Get role service instance."""
    return RoleService(db, audit)


async def get_system_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
) -> SystemService:
    """Get system service instance."""
    return SystemService(db, audit)
