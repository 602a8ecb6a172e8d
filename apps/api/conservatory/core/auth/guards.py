"""
Access rules evaluated against an AuthContext.

Each rule is a pure function of (identity, requirement) returning a
GuardDecision. Route dependencies in .dependencies call enforce() on the
decision, which raises the matching AppError when access is denied.

Usage:
    decision = check_permission(ctx, PermissionCode.ROLE_ASSIGN)
    if decision.allowed:
        ...

    enforce(check_role(ctx, ["TEACHER", "ADMIN"]))
"""

from dataclasses import dataclass, field
from typing import Any, Iterable
from uuid import UUID

from conservatory.core.errors import AppError, Forbidden, Unauthenticated
from conservatory.core.permissions import ACCESS_ANY_PERMISSIONS

from .context import (
    AuthContext,
    has_all_permissions,
    has_any_permission,
    has_permission,
)


# ============================================================
# DECISION
# ============================================================

@dataclass(frozen=True)
class GuardDecision:
    """
    Result of evaluating one access rule.

    Attributes:
        allowed: Whether the request may proceed
        error: Error class to raise when denied
        message: Message for the error envelope
        context: Extra envelope fields describing the failed rule
    """
    allowed: bool
    error: type[AppError] | None = None
    message: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(allowed=True)

    @classmethod
    def unauthenticated(cls) -> "GuardDecision":
        # Never carries the requirement, so a caller without identity learns
        # nothing about what the route needs.
        return cls(allowed=False, error=Unauthenticated)

    @classmethod
    def forbid(cls, message: str | None = None, **context: Any) -> "GuardDecision":
        return cls(allowed=False, error=Forbidden, message=message, context=context)


def enforce(decision: GuardDecision) -> None:
    """Raise the decision's error if access was denied."""
    if decision.allowed:
        return
    raise decision.error(decision.message, **decision.context)


def _names(values: Iterable) -> list[str]:
    return [str(getattr(v, "value", v)) for v in values]


def _owner_id(value: Any) -> UUID | None:
    """Parse an owner id from a path parameter; unparseable ids own nothing."""
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


# ============================================================
# RULES
# ============================================================

def check_authenticated(ctx: AuthContext | None) -> GuardDecision:
    """Pass iff an identity is present."""
    if ctx is None:
        return GuardDecision.unauthenticated()
    return GuardDecision.allow()


def check_permission(ctx: AuthContext | None, permission) -> GuardDecision:
    """Pass iff the caller holds `permission`."""
    if ctx is None:
        return GuardDecision.unauthenticated()
    if not has_permission(ctx, permission):
        return GuardDecision.forbid(required=_names([permission])[0])
    return GuardDecision.allow()


def check_all_permissions(ctx: AuthContext | None, permissions: Iterable) -> GuardDecision:
    """Pass iff the caller holds every permission (AND)."""
    permissions = _names(permissions)
    if ctx is None:
        return GuardDecision.unauthenticated()
    if not has_all_permissions(ctx, permissions):
        return GuardDecision.forbid(required=permissions)
    return GuardDecision.allow()


def check_any_permission(ctx: AuthContext | None, permissions: Iterable) -> GuardDecision:
    """Pass iff the caller holds at least one permission (OR)."""
    permissions = _names(permissions)
    if ctx is None:
        return GuardDecision.unauthenticated()
    if not has_any_permission(ctx, permissions):
        return GuardDecision.forbid(requiredAny=permissions)
    return GuardDecision.allow()


def check_role(ctx: AuthContext | None, roles: str | Iterable[str]) -> GuardDecision:
    """Pass iff the caller's role is one of `roles`."""
    accepted = _names([roles] if isinstance(roles, str) else roles)
    if ctx is None:
        return GuardDecision.unauthenticated()
    if ctx.role not in accepted:
        return GuardDecision.forbid(
            "Insufficient role privileges.",
            required=accepted,
            current=ctx.role,
        )
    return GuardDecision.allow()


def check_ownership(ctx: AuthContext | None, resource_owner_id: Any) -> GuardDecision:
    """
    Pass iff the resource belongs to the caller.

    Holding any of ACCESS_ANY_PERMISSIONS also passes, whoever owns the
    resource.
    """
    if ctx is None:
        return GuardDecision.unauthenticated()
    if _owner_id(resource_owner_id) == ctx.user_id:
        return GuardDecision.allow()
    if has_any_permission(ctx, ACCESS_ANY_PERMISSIONS):
        return GuardDecision.allow()
    return GuardDecision.forbid("You can only access your own resources.")
