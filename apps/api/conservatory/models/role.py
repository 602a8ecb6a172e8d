"""
RBAC models - roles and the persisted permission catalog.

Roles hold permissions through the role_permissions association table.
Permission rows mirror conservatory.core.permissions.PermissionCode and are
created by SystemService.sync_permissions().
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, StandardMixin


# Many-to-many relationship between Role and Permission
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", Uuid(), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Uuid(), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Permission(Base, StandardMixin):
    """
    Persisted copy of one catalog permission.

    `name` is the DOMAIN:ACTION:SCOPE code; `category` is its DOMAIN part.
    """

    __tablename__ = "permissions"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Permission {self.name}>"


class Role(Base, StandardMixin):
    """
    Named bundle of permissions assigned to users.

    Roles are never hard-deleted; `is_active` hides them from listings.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    permissions: Mapped[list[Permission]] = relationship(
        Permission,
        secondary=role_permissions,
        lazy="selectin",
    )

    @property
    def permission_names(self) -> list[str]:
        """Sorted permission codes held by the role."""
        return sorted(p.name for p in self.permissions)

    @property
    def permission_count(self) -> int:
        return len(self.permissions)

    def __repr__(self) -> str:
        return f"<Role {self.name}>"
