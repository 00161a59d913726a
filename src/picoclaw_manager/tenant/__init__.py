"""Tenant domain: model, persistence and lifecycle orchestration."""

from picoclaw_manager.tenant.model import (
    CreateTenantRequest,
    Resources,
    Tenant,
    TenantStatus,
    TenantWorkloadStatus,
    UpdateTenantRequest,
)
from picoclaw_manager.tenant.orchestrator import CompensationOutcome, TenantOrchestrator
from picoclaw_manager.tenant.store import SQLAlchemyTenantStore, TenantStore

__all__ = [
    "CompensationOutcome",
    "CreateTenantRequest",
    "Resources",
    "SQLAlchemyTenantStore",
    "Tenant",
    "TenantOrchestrator",
    "TenantStatus",
    "TenantStore",
    "TenantWorkloadStatus",
    "UpdateTenantRequest",
]
