"""
Role and permission administration.

Usage:
    service = RoleService(db, audit)

    roles = await service.list_roles()
    await service.add_permission(role_id, "STUDENT:READ:ANY", actor=ctx)
    stats = await service.get_role_stats()
"""

from collections import defaultdict
from typing import Any, Iterable, Optional
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from conservatory.core.auth.context import AuthContext
from conservatory.core.errors import NotFound, ValidationError
from conservatory.core.permissions import ROLE_DEFAULTS, ROLE_DESCRIPTIONS
from conservatory.models.audit_log import AuditAction, AuditSeverity
from conservatory.models.role import Permission, Role, role_permissions
from conservatory.models.user import User
from conservatory.schemas.audit_log import AuditEntry
from conservatory.schemas.role import (
    PermissionCatalog,
    PermissionDetail,
    PermissionResponse,
    RoleDetail,
    RoleDistribution,
    RoleStats,
    RoleSummary,
)
from conservatory.services.audit import AuditService

logger = structlog.get_logger()

SYSTEM_ACTOR_ROLE = "SYSTEM"


def system_entry(**fields: Any) -> AuditEntry:
    """Audit entry for changes made by the application itself."""
    return AuditEntry(performed_by=None, performer_role=SYSTEM_ACTOR_ROLE, **fields)


class RoleService:
    """Role/permission admin service."""

    def __init__(self, db: AsyncSession, audit: AuditService):
        self.db = db
        self.audit = audit

    # ============================================================
    # ROLES
    # ============================================================

    async def _get_role(self, role_id: UUID) -> Role:
        role = await self.db.get(Role, role_id)
        if not role:
            raise NotFound("Role", role_id)
        return role

    async def _user_count(self, role_id: UUID) -> int:
        stmt = (
            select(func.count(User.id))
            .where(User.role_id == role_id, User.deleted_at.is_(None))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def list_roles(self) -> list[RoleSummary]:
        """Active roles sorted by name."""
        stmt = select(Role).where(Role.is_active.is_(True)).order_by(Role.name)
        result = await self.db.execute(stmt)
        return [RoleSummary.from_role(role) for role in result.scalars().all()]

    async def get_role(self, role_id: UUID) -> RoleDetail:
        """Role by id with its live user count."""
        role = await self._get_role(role_id)
        return RoleDetail.from_role(role, user_count=await self._user_count(role.id))

    async def get_role_by_name(self, name: str) -> RoleDetail:
        """Role by unique name (case-insensitive)."""
        stmt = select(Role).where(Role.name == name.upper())
        result = await self.db.execute(stmt)
        role = result.scalar_one_or_none()
        if not role:
            raise NotFound("Role", name.upper())
        return RoleDetail.from_role(role, user_count=await self._user_count(role.id))

    async def ensure_default_roles(self) -> list[str]:
        """Create missing built-in roles with their default permissions."""
        result = await self.db.execute(select(Role.name))
        existing = set(result.scalars().all())

        created = []
        for role_name, defaults in ROLE_DEFAULTS.items():
            if role_name.value in existing:
                continue
            permissions = await self._active_permissions(p.value for p in defaults)
            self.db.add(Role(
                name=role_name.value,
                description=ROLE_DESCRIPTIONS[role_name],
                permissions=[permissions[n] for n in sorted(permissions)],
            ))
            created.append(role_name.value)

        if created:
            await self.db.flush()
            logger.info("Default roles created", roles=created)
        return created

    # ============================================================
    # ROLE PERMISSIONS
    # ============================================================

    async def _active_permissions(self, names: Iterable[str]) -> dict[str, Permission]:
        names = set(names)
        if not names:
            return {}
        stmt = select(Permission).where(
            Permission.name.in_(names),
            Permission.is_active.is_(True),
        )
        result = await self.db.execute(stmt)
        return {p.name: p for p in result.scalars().all()}

    async def _record_change(
        self,
        role: Role,
        before: list[str],
        actor: Optional[AuthContext],
        description: str,
    ) -> None:
        """Flush a permission change and submit its audit entry."""
        after = role.permission_names
        if before == after:
            return

        await self.db.flush()

        fields = dict(
            action=AuditAction.ROLE_CHANGED,
            severity=AuditSeverity.CRITICAL,
            target_model="Role",
            target_id=str(role.id),
            description=description,
            previous_state={"permissions": before},
            new_state={"permissions": after},
            metadata={"role": role.name},
        )
        entry = AuditEntry.by(actor, **fields) if actor else system_entry(**fields)
        self.audit.submit(entry)

        logger.info(
            "Role permissions changed",
            role=role.name,
            added=sorted(set(after) - set(before)),
            removed=sorted(set(before) - set(after)),
        )

    async def replace_permissions(
        self,
        role_id: UUID,
        permissions: Any,
        actor: Optional[AuthContext] = None,
    ) -> RoleSummary:
        """
        Replace a role's whole permission set.

        Raises:
            ValidationError: If `permissions` is not a list of catalog names
            NotFound: If the role does not exist
        """
        if isinstance(permissions, (str, bytes, dict)) or not isinstance(
            permissions, (list, tuple, set, frozenset)
        ):
            raise ValidationError("Permissions must be an array")
        if not all(isinstance(p, str) for p in permissions):
            raise ValidationError("Permissions must be an array of strings")

        role = await self._get_role(role_id)
        requested = set(permissions)
        found = await self._active_permissions(requested)

        invalid = sorted(requested - found.keys())
        if invalid:
            raise ValidationError(
                f"Invalid permissions: {', '.join(invalid)}",
                invalid=invalid,
            )

        before = role.permission_names
        role.permissions = [found[name] for name in sorted(found)]
        await self._record_change(
            role, before, actor,
            f"Replaced permissions of role {role.name}",
        )
        return RoleSummary.from_role(role)

    async def add_permission(
        self,
        role_id: UUID,
        permission: str,
        actor: Optional[AuthContext] = None,
    ) -> RoleSummary:
        """
        Grant one permission. Granting a held permission is a no-op.

        Raises:
            NotFound: If the role or the permission does not exist
        """
        role = await self._get_role(role_id)
        found = await self._active_permissions([permission])
        if permission not in found:
            raise NotFound("Permission", permission)

        before = role.permission_names
        if permission not in before:
            role.permissions.append(found[permission])
        await self._record_change(
            role, before, actor,
            f"Added permission {permission} to role {role.name}",
        )
        return RoleSummary.from_role(role)

    async def remove_permission(
        self,
        role_id: UUID,
        permission: str,
        actor: Optional[AuthContext] = None,
    ) -> RoleSummary:
        """Revoke one permission. Revoking an absent permission is a no-op."""
        role = await self._get_role(role_id)

        before = role.permission_names
        role.permissions = [p for p in role.permissions if p.name != permission]
        await self._record_change(
            role, before, actor,
            f"Removed permission {permission} from role {role.name}",
        )
        return RoleSummary.from_role(role)

    # ============================================================
    # PERMISSION CATALOG
    # ============================================================

    async def list_permissions(self) -> PermissionCatalog:
        """Active persisted permissions, flat and grouped by domain."""
        stmt = (
            select(Permission)
            .where(Permission.is_active.is_(True))
            .order_by(Permission.name)
        )
        result = await self.db.execute(stmt)
        permissions = [
            PermissionResponse.model_validate(p) for p in result.scalars().all()
        ]

        grouped: dict[str, list[PermissionResponse]] = defaultdict(list)
        for permission in permissions:
            grouped[permission.name.split(":", 1)[0]].append(permission)

        return PermissionCatalog(
            permissions=permissions,
            grouped=dict(grouped),
            total=len(permissions),
        )

    async def get_permission(self, name: str) -> PermissionDetail:
        """One permission with the names of the roles holding it."""
        stmt = select(Permission).where(Permission.name == name)
        result = await self.db.execute(stmt)
        permission = result.scalar_one_or_none()
        if not permission:
            raise NotFound("Permission", name)

        roles_stmt = (
            select(Role.name)
            .join(role_permissions, role_permissions.c.role_id == Role.id)
            .where(role_permissions.c.permission_id == permission.id)
            .order_by(Role.name)
        )
        roles = (await self.db.execute(roles_stmt)).scalars().all()

        return PermissionDetail(
            **PermissionResponse.model_validate(permission).model_dump(),
            roles=list(roles),
        )

    # ============================================================
    # STATISTICS
    # ============================================================

    async def get_role_stats(self) -> RoleStats:
        """Live users per role, largest first, with rounded percentages."""
        stmt = (
            select(Role.name, func.count(User.id))
            .join(User, User.role_id == Role.id)
            .where(User.deleted_at.is_(None))
            .group_by(Role.name)
        )
        rows = (await self.db.execute(stmt)).all()
        total = sum(count for _, count in rows)

        distribution = [
            RoleDistribution(
                role=name,
                count=count,
                percentage=round(count / total * 100) if total else 0,
            )
            for name, count in sorted(rows, key=lambda r: (-r[1], r[0]))
        ]
        return RoleStats(distribution=distribution, total=total)
