"""
Resolved request identity.

AuthContext is built once per request by the authentication dependency and
passed explicitly into every guard. It is immutable; nothing downstream may
widen or narrow the permission set.
"""

from dataclasses import dataclass, field
from typing import Iterable
from uuid import UUID


@dataclass(frozen=True)
class AuthContext:
    """
    Identity of the caller for one request.

    Attributes:
        user_id: Id of the authenticated user
        role: Role name (e.g. "ADMIN")
        permissions: Union of the role's permissions
    """
    user_id: UUID
    role: str
    permissions: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        user_id: UUID | str,
        role: str,
        permissions: Iterable[str] = (),
    ) -> "AuthContext":
        """Build a context, normalizing ids and permission values."""
        if not isinstance(user_id, UUID):
            user_id = UUID(str(user_id))
        return cls(
            user_id=user_id,
            role=role,
            permissions=frozenset(str(getattr(p, "value", p)) for p in permissions),
        )


def _value(permission) -> str:
    return str(getattr(permission, "value", permission))


def has_permission(ctx: AuthContext | None, permission) -> bool:
    """Check a single permission without raising."""
    if ctx is None:
        return False
    return _value(permission) in ctx.permissions


def has_any_permission(ctx: AuthContext | None, permissions: Iterable) -> bool:
    """Check that at least one permission is held."""
    if ctx is None:
        return False
    return any(_value(p) in ctx.permissions for p in permissions)


def has_all_permissions(ctx: AuthContext | None, permissions: Iterable) -> bool:
    """Check that every permission is held."""
    if ctx is None:
        return False
    return all(_value(p) in ctx.permissions for p in permissions)
