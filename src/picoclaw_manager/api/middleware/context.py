"""Request context middleware: request IDs and log context."""

from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from uuid_utils import uuid7

from picoclaw_manager.core.logging import bind_contextvars, clear_contextvars


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns each request an ID and binds it for logging.

    Sets:
        request.state.request_id: The generated request ID (UUIDv7)
        X-Request-ID response header: For client correlation
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request within a fresh log context."""
        request_id = str(uuid7())
        request.state.request_id = request_id

        clear_contextvars()
        bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            clear_contextvars()

        response.headers["X-Request-ID"] = request_id
        return response
