"""Tenant lifecycle endpoints."""

from fastapi import APIRouter, Response, status

from picoclaw_manager.api.dependencies import Orchestrator
from picoclaw_manager.api.schemas.tenants import (
    RestartResponse,
    TenantCreateRequest,
    TenantResponse,
    TenantStatusResponse,
    TenantUpdateRequest,
)
from picoclaw_manager.core.exceptions import NotFoundError

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Provision a tenant",
)
async def create_tenant(body: TenantCreateRequest, orchestrator: Orchestrator) -> TenantResponse:
    """Render and apply the tenant's manifests, then record it.

    Returns 400 for an invalid ID, 409 if the ID is taken and 502 if the
    cluster rejects the manifests.
    """
    tenant = await orchestrator.create(body.to_domain())
    return TenantResponse.from_tenant(tenant)


@router.get("", response_model=list[TenantResponse], summary="List tenants")
async def list_tenants(orchestrator: Orchestrator) -> list[TenantResponse]:
    tenants = await orchestrator.list()
    return [TenantResponse.from_tenant(t) for t in tenants]


@router.get("/{tenant_id}", response_model=TenantResponse, summary="Get a tenant")
async def get_tenant(tenant_id: str, orchestrator: Orchestrator) -> TenantResponse:
    tenant = await orchestrator.get(tenant_id)
    if tenant is None:
        raise NotFoundError(tenant_id)
    return TenantResponse.from_tenant(tenant)


@router.put("/{tenant_id}", response_model=TenantResponse, summary="Update a tenant")
async def update_tenant(
    tenant_id: str, body: TenantUpdateRequest, orchestrator: Orchestrator
) -> TenantResponse:
    """Apply a partial update and re-apply the tenant's manifests."""
    tenant = await orchestrator.update(tenant_id, body.to_domain())
    return TenantResponse.from_tenant(tenant)


@router.delete(
    "/{tenant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a tenant",
)
async def delete_tenant(tenant_id: str, orchestrator: Orchestrator) -> Response:
    """Delete the tenant namespace and its record."""
    await orchestrator.delete(tenant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{tenant_id}/restart", response_model=RestartResponse, summary="Restart a tenant")
async def restart_tenant(tenant_id: str, orchestrator: Orchestrator) -> RestartResponse:
    """Trigger a rolling restart of the agent and gateway workloads."""
    await orchestrator.restart(tenant_id)
    return RestartResponse()


@router.get(
    "/{tenant_id}/status",
    response_model=TenantStatusResponse,
    summary="Workload replica status",
)
async def tenant_status(tenant_id: str, orchestrator: Orchestrator) -> TenantStatusResponse:
    workload_status = await orchestrator.status(tenant_id)
    return TenantStatusResponse.from_status(workload_status)
