"""
FastAPI dependencies for authentication and access gates.

Usage:
    from conservatory.core.auth.dependencies import (
        CurrentContext,
        require_permission,
        require_role,
    )

    @router.get("/me")
    async def me(ctx: CurrentContext):
        ...

    @router.put(
        "/{role_id}/permissions",
        dependencies=[Depends(require_permission(PermissionCode.ROLE_ASSIGN))],
    )
    async def replace(...):
        ...

Gates listed on a router run before gates listed on a route, and within a
`dependencies=[...]` list they run in order. The first failing gate stops
the request.
"""

from typing import Annotated, Callable, Iterable

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from conservatory.api.dependencies.database import get_db
from conservatory.core.permissions import RoleName

from .context import AuthContext
from .guards import (
    check_all_permissions,
    check_any_permission,
    check_authenticated,
    check_ownership,
    check_permission,
    check_role,
    enforce,
)


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ============================================================
# IDENTITY
# ============================================================

async def get_auth_context(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext | None:
    """
    Resolve the bearer token into an AuthContext.

    Returns None when no token is sent; gates turn that into a 401.

    Raises:
        Unauthenticated: If the token is invalid, expired or stale
    """
    if not token:
        return None

    from conservatory.services.auth import AuthService

    return await AuthService(db).resolve_context(token)


# ============================================================
# GATES
# ============================================================

def require_authenticated() -> Callable:
    """Dependency factory: any resolved identity."""

    async def _check(ctx: AuthContext | None = Depends(get_auth_context)) -> AuthContext:
        enforce(check_authenticated(ctx))
        return ctx

    return _check


def require_permission(permission) -> Callable:
    """Dependency factory: caller must hold `permission`."""

    async def _check(ctx: AuthContext | None = Depends(get_auth_context)) -> AuthContext:
        enforce(check_permission(ctx, permission))
        return ctx

    return _check


def require_all_permissions(permissions: Iterable) -> Callable:
    """Dependency factory: caller must hold every permission."""
    permissions = list(permissions)

    async def _check(ctx: AuthContext | None = Depends(get_auth_context)) -> AuthContext:
        enforce(check_all_permissions(ctx, permissions))
        return ctx

    return _check


def require_any_permission(permissions: Iterable) -> Callable:
    """Dependency factory: caller must hold at least one permission."""
    permissions = list(permissions)

    async def _check(ctx: AuthContext | None = Depends(get_auth_context)) -> AuthContext:
        enforce(check_any_permission(ctx, permissions))
        return ctx

    return _check


def require_role(roles: str | Iterable[str]) -> Callable:
    """Dependency factory: caller's role must be one of `roles`."""
    if not isinstance(roles, str):
        roles = list(roles)

    async def _check(ctx: AuthContext | None = Depends(get_auth_context)) -> AuthContext:
        enforce(check_role(ctx, roles))
        return ctx

    return _check


def require_admin() -> Callable:
    return require_role(RoleName.ADMIN.value)


def require_teacher_or_admin() -> Callable:
    return require_role([RoleName.TEACHER.value, RoleName.ADMIN.value])


def require_ownership(id_field: str = "user_id") -> Callable:
    """
    Dependency factory: the path parameter `id_field` must be the caller's id.

    Callers holding an access-any permission pass for any id.
    """

    async def _check(
        request: Request,
        ctx: AuthContext | None = Depends(get_auth_context),
    ) -> AuthContext:
        enforce(check_ownership(ctx, request.path_params.get(id_field)))
        return ctx

    return _check


# ============================================================
# TYPE ALIASES FOR CLEAN SIGNATURES
# ============================================================

# Authenticated caller (required)
CurrentContext = Annotated[AuthContext, Depends(require_authenticated())]
