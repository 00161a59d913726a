"""Authentication middleware for API key validation."""

import re
import secrets
from collections.abc import Callable
from datetime import UTC, datetime

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from picoclaw_manager.api.schemas.errors import APIError, ErrorCode

# Paths that don't require authentication
SKIP_AUTH_PATHS = {
    "/health",
    "/health/db",
    "/docs",
    "/redoc",
    "/openapi.json",
}

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the ``Authorization: Bearer <API_KEY>`` header.

    A missing or malformed header is rejected with 401; a well-formed
    header carrying the wrong key is rejected with 403.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and validate authentication."""
        if request.url.path in SKIP_AUTH_PATHS:
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return self._reject(request, 401, ErrorCode.UNAUTHORIZED, "Missing Authorization header")

        match = _BEARER.match(auth_header)
        if not match:
            return self._reject(
                request, 401, ErrorCode.UNAUTHORIZED, "Invalid Authorization header format"
            )

        if not self._validate_token(match.group(1).strip(), request):
            return self._reject(request, 403, ErrorCode.FORBIDDEN, "Invalid API key")

        return await call_next(request)

    def _validate_token(self, token: str, request: Request) -> bool:
        """Constant-time comparison against the configured API key."""
        expected = request.app.state.settings.API_KEY.get_secret_value()
        if not expected:
            return False
        return secrets.compare_digest(token.encode(), expected.encode())

    def _reject(
        self, request: Request, status_code: int, code: ErrorCode, message: str
    ) -> JSONResponse:
        request_id = str(getattr(request.state, "request_id", "unknown"))
        error = APIError(
            error_code=code.value,
            message=message,
            details=None,
            request_id=request_id,
            timestamp=datetime.now(UTC),
        )
        headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
        return JSONResponse(
            status_code=status_code,
            content=error.model_dump(mode="json"),
            headers=headers,
        )
