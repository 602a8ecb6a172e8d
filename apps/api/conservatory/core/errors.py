"""
Application error taxonomy.

Every error raised by services and guards derives from AppError and is
rendered by the handlers in conservatory.main as:

    {"success": false, "message": "...", **context}
"""

from typing import Any


class AppError(Exception):
    """Base class for errors rendered into the error envelope."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        **context: Any,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the error envelope."""
        return {"success": False, "message": self.message, **self.context}


class ValidationError(AppError):
    """Malformed input."""

    status_code = 400
    default_message = "Validation failed"


class Unauthenticated(AppError):
    """No resolved identity on the request."""

    status_code = 401
    default_message = "Authentication required."


class Forbidden(AppError):
    """Identity present but the access rule failed."""

    status_code = 403
    default_message = "Insufficient permissions."


class NotFound(AppError):
    """Lookup miss for a named resource."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any, **context: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with ID {identifier} not found", **context)
