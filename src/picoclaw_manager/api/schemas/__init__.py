"""API schemas for request/response validation."""

from .errors import APIError, ErrorCode
from .health import ComponentHealth, HealthDetailResponse, HealthResponse, HealthStatus
from .tenants import (
    ResourcesInput,
    ResourcesResponse,
    RestartResponse,
    TenantCreateRequest,
    TenantResponse,
    TenantStatusResponse,
    TenantUpdateRequest,
    WorkloadStatusResponse,
)

__all__ = [
    # Error schemas
    "APIError",
    "ErrorCode",
    # Health schemas
    "ComponentHealth",
    "HealthStatus",
    "HealthResponse",
    "HealthDetailResponse",
    # Tenant schemas
    "ResourcesInput",
    "ResourcesResponse",
    "RestartResponse",
    "TenantCreateRequest",
    "TenantResponse",
    "TenantStatusResponse",
    "TenantUpdateRequest",
    "WorkloadStatusResponse",
]
