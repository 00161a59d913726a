"""Error response schemas for API."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication & Authorization
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"

    # Tenant errors
    TENANT_NOT_FOUND = "tenant_not_found"
    TENANT_EXISTS = "tenant_exists"

    # Request errors
    INVALID_REQUEST = "invalid_request"
    VALIDATION_ERROR = "validation_error"

    # Downstream errors
    CLUSTER_ERROR = "cluster_error"
    PERSISTENCE_ERROR = "persistence_error"
    RENDER_ERROR = "render_error"

    # System errors
    INTERNAL_ERROR = "internal_error"


class APIError(BaseModel):
    """Standardized API error response format.

    All API errors return this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(
        default=None, description="Additional error context"
    )
    request_id: str = Field(..., description="Request ID for tracing (UUIDv7)")
    timestamp: datetime = Field(..., description="When the error occurred")

    model_config = {"json_schema_extra": {"example": {
        "error_code": "tenant_not_found",
        "message": "Tenant not found: acme",
        "details": {"tenant_id": "acme"},
        "request_id": "019478f2-1234-7000-8000-abcdef123456",
        "timestamp": "2026-01-30T12:00:00Z",
    }}}
