"""
Role-based access control.

- context: AuthContext, the immutable per-request identity, plus the
  has_permission / has_any_permission / has_all_permissions predicates
- guards: pure access rules returning a GuardDecision
- dependencies: FastAPI gates (require_permission, require_role, ...)

The dependencies module touches the database layer and is imported
explicitly by the routes that need it.
"""

from .context import (
    AuthContext,
    has_permission,
    has_any_permission,
    has_all_permissions,
)
from .guards import (
    GuardDecision,
    enforce,
    check_authenticated,
    check_permission,
    check_all_permissions,
    check_any_permission,
    check_role,
    check_ownership,
)

__all__ = [
    "AuthContext",
    "has_permission",
    "has_any_permission",
    "has_all_permissions",
    "GuardDecision",
    "enforce",
    "check_authenticated",
    "check_permission",
    "check_all_permissions",
    "check_any_permission",
    "check_role",
    "check_ownership",
]
