"""Tenant request/response schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from picoclaw_manager.tenant.model import (
    CreateTenantRequest,
    Resources,
    Tenant,
    TenantStatus,
    TenantWorkloadStatus,
    UpdateTenantRequest,
)


class ResourcesInput(BaseModel):
    """Resource overrides; omitted or empty fields keep the current value."""

    agent_cpu: str = ""
    agent_memory: str = ""
    gateway_cpu: str = ""
    gateway_memory: str = ""
    workspace_size: str = ""

    def to_domain(self) -> Resources:
        return Resources(**self.model_dump())


class ResourcesResponse(BaseModel):
    agent_cpu: str
    agent_memory: str
    gateway_cpu: str
    gateway_memory: str
    workspace_size: str

    model_config = {"from_attributes": True}


class TenantCreateRequest(BaseModel):
    """Body of ``POST /api/v1/tenants``."""

    tenant_id: str = Field(..., description="DNS-label tenant identifier")
    display_name: str = Field(..., description="Human-readable tenant name")
    providers: dict[str, Any] | None = None
    agents: dict[str, Any] | None = None
    channels: dict[str, Any] | None = None
    resources: ResourcesInput | None = None

    model_config = {"json_schema_extra": {"example": {
        "tenant_id": "acme",
        "display_name": "ACME Corp",
        "providers": {"openai": {"api_key": "sk-..."}},
        "resources": {"agent_memory": "2Gi"},
    }}}

    def to_domain(self) -> CreateTenantRequest:
        return CreateTenantRequest(
            tenant_id=self.tenant_id,
            display_name=self.display_name,
            providers=self.providers,
            agents=self.agents,
            channels=self.channels,
            resources=self.resources.to_domain() if self.resources else None,
        )


class TenantUpdateRequest(BaseModel):
    """Body of ``PUT /api/v1/tenants/{id}``. Every field is optional."""

    display_name: str = ""
    providers: dict[str, Any] | None = None
    agents: dict[str, Any] | None = None
    channels: dict[str, Any] | None = None
    resources: ResourcesInput | None = None

    def to_domain(self) -> UpdateTenantRequest:
        return UpdateTenantRequest(
            display_name=self.display_name,
            providers=self.providers,
            agents=self.agents,
            channels=self.channels,
            resources=self.resources.to_domain() if self.resources else None,
        )


class TenantResponse(BaseModel):
    """A tenant record as returned by the API."""

    id: str
    display_name: str
    namespace: str
    status: TenantStatus
    config: dict[str, Any]
    resources: ResourcesResponse
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> "TenantResponse":
        return cls.model_validate(tenant)


class RestartResponse(BaseModel):
    status: str = "restarting"


class WorkloadStatusResponse(BaseModel):
    ready_replicas: int
    replicas: int
    ready: bool


class TenantStatusResponse(BaseModel):
    """Replica counts of a tenant's agent and gateway workloads."""

    tenant_id: str
    agent: WorkloadStatusResponse
    gateway: WorkloadStatusResponse

    @classmethod
    def from_status(cls, status: TenantWorkloadStatus) -> "TenantStatusResponse":
        return cls(
            tenant_id=status.tenant_id,
            agent=WorkloadStatusResponse(
                ready_replicas=status.agent.ready_replicas,
                replicas=status.agent.replicas,
                ready=status.agent.is_ready,
            ),
            gateway=WorkloadStatusResponse(
                ready_replicas=status.gateway.ready_replicas,
                replicas=status.gateway.replicas,
                ready=status.gateway.is_ready,
            ),
        )
