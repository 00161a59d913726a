"""Error handling middleware for mapping exceptions to HTTP responses."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from picoclaw_manager.api.schemas.errors import APIError, ErrorCode
from picoclaw_manager.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    RemoteError,
    RenderError,
    ValidationError,
)
from picoclaw_manager.core.logging import log_exception

logger = structlog.get_logger()

# Exception to HTTP status/error code mapping
# Format: Exception -> (status_code, error_code)
EXCEPTION_MAP: dict[type[Exception], tuple[int, str]] = {
    ValidationError: (400, ErrorCode.VALIDATION_ERROR.value),
    NotFoundError: (404, ErrorCode.TENANT_NOT_FOUND.value),
    ConflictError: (409, ErrorCode.TENANT_EXISTS.value),
    RemoteError: (502, ErrorCode.CLUSTER_ERROR.value),
    PersistenceError: (500, ErrorCode.PERSISTENCE_ERROR.value),
    RenderError: (500, ErrorCode.RENDER_ERROR.value),
}


def _request_id(request: Request) -> str:
    return str(getattr(request.state, "request_id", "unknown"))


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None,
) -> JSONResponse:
    request_id = _request_id(request)
    error = APIError(
        error_code=error_code,
        message=message,
        details=details,
        request_id=request_id,
        timestamp=datetime.now(UTC),
    )
    return JSONResponse(
        status_code=status_code,
        content=error.model_dump(mode="json"),
        headers={"X-Request-ID": request_id},
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses.

    Maps domain exceptions to HTTP status codes via ``EXCEPTION_MAP`` and
    formats all errors using the APIError schema.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc)

    def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Convert exception to JSON error response."""
        status_code, error_code, message, details = self._map_exception(exc, request)
        if status_code >= 500:
            log_exception(logger, exc, http_status=status_code)
        return _error_response(request, status_code, error_code, message, details)

    def _map_exception(
        self, exc: Exception, request: Request
    ) -> tuple[int, str, str, dict | None]:
        """Map exception to (status_code, error_code, message, details)."""
        for exc_type, (status_code, error_code) in EXCEPTION_MAP.items():
            if isinstance(exc, exc_type):
                message = exc.args[0] if exc.args else str(exc)
                return status_code, error_code, message, self._details(exc)

        return (
            500,
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            {"type": type(exc).__name__} if request.app.state.settings.DEBUG else None,
        )

    def _details(self, exc: Exception) -> dict | None:
        if isinstance(exc, ValidationError):
            return {"field": exc.field}
        if isinstance(exc, NotFoundError | ConflictError):
            return {"tenant_id": exc.tenant_id}
        if isinstance(exc, RemoteError):
            return {
                "operation": exc.operation,
                "resource": exc.resource,
                "status_code": exc.status_code,
            }
        if isinstance(exc, PersistenceError):
            return {"tenant_id": exc.tenant_id, "operation": exc.operation}
        if isinstance(exc, RenderError):
            return {"template": exc.template}
        return None


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 in the APIError format."""
    return _error_response(
        request,
        400,
        ErrorCode.INVALID_REQUEST.value,
        "Request validation failed",
        {"errors": _jsonable_errors(exc.errors())},
    )


def _jsonable_errors(errors: Any) -> list[dict[str, Any]]:
    # pydantic error contexts may hold exception instances
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in errors
    ]
