"""Middleware package."""

from conservatory.api.middleware.logging import LoggingMiddleware
from conservatory.utils.context import RequestContextMiddleware

__all__ = [
    "LoggingMiddleware",
    "RequestContextMiddleware",
]
