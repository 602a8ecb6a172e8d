"""
Per-request metadata.

RequestContextMiddleware records who is calling and from where; the audit
service stamps that onto every entry written while the request (or a task
spawned from it) is running. The request id is also bound into structlog's
contextvars so every log line of the request carries it.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_request_context: ContextVar[Optional["RequestContext"]] = ContextVar("request_context", default=None)


@dataclass
class RequestContext:
    """Origin of the current request, as recorded on audit entries."""

    request_id: str
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None

    # Set once the bearer token resolves
    user_id: Optional[str] = None


def get_request_context() -> Optional[RequestContext]:
    """The current request's context, or None outside a request."""
    return _request_context.get()


def set_context_user(user_id: str) -> None:
    """Record the authenticated user on the request context."""
    ctx = _request_context.get()
    if ctx:
        ctx.user_id = user_id


def _client_ip(request: Request) -> Optional[str]:
    # First hop of X-Forwarded-For when behind a proxy
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Create the request context for each request.

    Honors an incoming X-Request-ID header and echoes the id back.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        ctx = RequestContext(
            request_id=request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4()),
            client_ip=_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )

        token = _request_context.set(ctx)
        structlog.contextvars.bind_contextvars(request_id=ctx.request_id)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = ctx.request_id
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
            _request_context.reset(token)


def add_request_user(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor adding the authenticated user id, once known."""
    ctx = _request_context.get()
    if ctx and ctx.user_id:
        event_dict.setdefault("user_id", ctx.user_id)
    return event_dict
