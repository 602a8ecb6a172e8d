"""
Role and permission schemas.
"""

from typing import Any
from uuid import UUID

from pydantic import Field

from conservatory.schemas.common import CamelModel


class PermissionResponse(CamelModel):
    """Persisted catalog permission."""
    id: UUID
    name: str
    label: str
    category: str
    description: str | None = None
    is_active: bool


class PermissionDetail(PermissionResponse):
    """Permission with the roles that hold it."""
    roles: list[str] = Field(default_factory=list)


class PermissionCatalog(CamelModel):
    """Active permissions, flat and grouped by domain."""
    permissions: list[PermissionResponse]
    grouped: dict[str, list[PermissionResponse]]
    total: int


class RoleSummary(CamelModel):
    """Role with its permission codes."""
    id: UUID
    name: str
    description: str | None = None
    is_active: bool
    permissions: list[str]
    permission_count: int

    @classmethod
    def from_role(cls, role, **extra: Any) -> "RoleSummary":
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            is_active=role.is_active,
            permissions=role.permission_names,
            permission_count=role.permission_count,
            **extra,
        )


class RoleDetail(RoleSummary):
    """Role with the number of live users holding it."""
    user_count: int


class RoleDistribution(CamelModel):
    role: str
    count: int
    percentage: int


class RoleStats(CamelModel):
    """Users per role."""
    distribution: list[RoleDistribution]
    total: int


class RolePermissionsReplace(CamelModel):
    """Replace a role's whole permission set."""
    permissions: list[str]


class RolePermissionAdd(CamelModel):
    """Grant one permission to a role."""
    permission: str = Field(min_length=1)
