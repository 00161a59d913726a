"""Request logging middleware."""

import time
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from picoclaw_manager.core.logging import log_request_end

logger = structlog.get_logger("picoclaw_manager.api.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs every HTTP request on completion.

    The level follows the status code: errors for 5xx, warnings for 4xx.
    The request ID is already bound to the log context by
    ``RequestContextMiddleware``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log request/response."""
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        log_request_end(
            logger,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            client_ip=self._get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return response

    def _get_client_ip(self, request: Request) -> str | None:
        """Extract client IP from request, considering proxy headers."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # Take first IP in the chain (original client)
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return None
