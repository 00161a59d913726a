"""API middleware components."""

from .auth import AuthenticationMiddleware
from .context import RequestContextMiddleware
from .errors import ErrorHandlingMiddleware, request_validation_handler
from .logging import RequestLoggingMiddleware

__all__ = [
    "AuthenticationMiddleware",
    "ErrorHandlingMiddleware",
    "RequestContextMiddleware",
    "RequestLoggingMiddleware",
    "request_validation_handler",
]
