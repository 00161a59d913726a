"""Tenant lifecycle orchestration.

The orchestrator sequences validation, config assembly, manifest rendering,
cluster application and persistence for each lifecycle operation. It makes
no attempt at transactional provisioning: a failure part-way through leaves
whatever already succeeded in place, with one exception. When a freshly
applied tenant cannot be recorded, its namespace is deleted on a
best-effort basis.
"""

import copy
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

import structlog

from picoclaw_manager.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    RemoteError,
    RenderError,
    ValidationError,
)
from picoclaw_manager.core.locks import TenantLocks
from picoclaw_manager.core.logging import LogContext
from picoclaw_manager.k8s.types import DeploymentStatus
from picoclaw_manager.tenant.model import (
    AGENT_WORKLOAD,
    GATEWAY_WORKLOAD,
    CreateTenantRequest,
    Resources,
    Tenant,
    TenantStatus,
    TenantVars,
    TenantWorkloadStatus,
    UpdateTenantRequest,
    build_config,
    namespace_for,
    validate_tenant_id,
)
from picoclaw_manager.tenant.store import TenantStore
from picoclaw_manager.utils.exceptions import ManifestParseError, StoreError

logger = structlog.get_logger()


class Renderer(Protocol):
    def render_all(self, tenant_vars: TenantVars) -> str: ...


class Applier(Protocol):
    async def apply(self, manifests: bytes | str) -> int: ...

    async def delete_namespace(self, namespace: str) -> None: ...

    async def restart_deployment(self, namespace: str, name: str) -> None: ...

    async def get_deployment_status(self, namespace: str, name: str) -> DeploymentStatus: ...


@dataclass(frozen=True)
class CompensationOutcome:
    """Result of the best-effort namespace cleanup after a failed create."""

    namespace: str
    succeeded: bool
    error: str | None = None


class TenantOrchestrator:
    """Coordinates tenant create, read, update, delete and restart.

    Mutating operations on the same tenant ID are serialized through
    ``locks``; operations on different tenants run concurrently.

    Example:
        orchestrator = TenantOrchestrator(store, renderer, applier, image)
        tenant = await orchestrator.create(
            CreateTenantRequest(tenant_id="acme", display_name="ACME")
        )
    """

    def __init__(
        self,
        store: TenantStore,
        renderer: Renderer,
        applier: Applier,
        image: str,
        locks: TenantLocks | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Tenant record persistence
            renderer: Produces the manifest stream for a tenant
            applier: Applies manifests and manages workloads on the cluster
            image: Container image reference rendered into both workloads
            locks: Per-tenant lock registry (a private one if omitted)
        """
        self.store = store
        self.renderer = renderer
        self.applier = applier
        self.image = image
        self.locks = locks if locks is not None else TenantLocks()

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(self, request: CreateTenantRequest) -> Tenant:
        """Provision a new tenant.

        Order: validate, check for an existing record, render, apply,
        persist as ``provisioning``, then mark ``active``.

        Raises:
            ValidationError: Malformed ID or missing display name
            ConflictError: A tenant with this ID is already recorded
            RenderError: Manifests could not be rendered
            RemoteError: Manifests could not be applied (nothing persisted)
            PersistenceError: The store failed; a namespace cleanup was attempted
        """
        validate_tenant_id(request.tenant_id)
        if not request.display_name:
            raise ValidationError("display_name is required", field="display_name")

        with LogContext(tenant_id=request.tenant_id, operation="create"):
            async with self.locks.hold(request.tenant_id):
                existing = await self._get(request.tenant_id)
                if existing is not None:
                    raise ConflictError(request.tenant_id)

                now = datetime.now(UTC)
                tenant = Tenant(
                    id=request.tenant_id,
                    display_name=request.display_name,
                    namespace=namespace_for(request.tenant_id),
                    config=build_config(request.providers, request.agents, request.channels),
                    resources=Resources.default().merge(request.resources),
                    status=TenantStatus.PROVISIONING,
                    created_at=now,
                    updated_at=now,
                )

                document_count = await self._render_and_apply(tenant)

                try:
                    await self.store.create(tenant)
                except StoreError as e:
                    outcome = await self._compensate(tenant.namespace)
                    logger.error(
                        "tenant_create_persist_failed",
                        error=str(e),
                        compensation_succeeded=outcome.succeeded,
                    )
                    raise PersistenceError(str(e), tenant.id, "create") from e

                tenant.status = TenantStatus.ACTIVE
                try:
                    await self.store.update(tenant)
                except StoreError as e:
                    # Resources are live; the record stays "provisioning".
                    logger.warning("tenant_activation_persist_failed", error=str(e))

                logger.info(
                    "tenant_created",
                    namespace=tenant.namespace,
                    document_count=document_count,
                )
                return tenant

    async def _compensate(self, namespace: str) -> CompensationOutcome:
        try:
            await self.applier.delete_namespace(namespace)
        except RemoteError as e:
            outcome = CompensationOutcome(namespace=namespace, succeeded=False, error=str(e))
        else:
            outcome = CompensationOutcome(namespace=namespace, succeeded=True)
        logger.warning(
            "compensation_attempted",
            namespace=outcome.namespace,
            succeeded=outcome.succeeded,
            error=outcome.error,
        )
        return outcome

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    async def get(self, tenant_id: str) -> Tenant | None:
        """Return the recorded tenant, or ``None`` if there is none."""
        return await self._get(tenant_id)

    async def list(self) -> list[Tenant]:
        """All recorded tenants, oldest first."""
        try:
            return await self.store.list()
        except StoreError as e:
            raise PersistenceError(str(e), "*", "list") from e

    async def status(self, tenant_id: str) -> TenantWorkloadStatus:
        """Point-in-time replica counts of both workloads.

        Raises:
            NotFoundError: Unknown tenant
            RemoteError: A deployment could not be read
        """
        tenant = await self._require(tenant_id)
        agent = await self.applier.get_deployment_status(tenant.namespace, AGENT_WORKLOAD)
        gateway = await self.applier.get_deployment_status(tenant.namespace, GATEWAY_WORKLOAD)
        return TenantWorkloadStatus(tenant_id=tenant.id, agent=agent, gateway=gateway)

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    async def update(self, tenant_id: str, request: UpdateTenantRequest) -> Tenant:
        """Apply a partial update and converge the cluster to it.

        A supplied ``providers``/``agents``/``channels`` value replaces that
        whole top-level key; other keys are kept. Resources merge field by
        field.

        Raises:
            NotFoundError: Unknown tenant
            RenderError: Manifests could not be rendered
            RemoteError: Manifests could not be applied (record unchanged)
            PersistenceError: The store failed after the cluster was updated
        """
        with LogContext(tenant_id=tenant_id, operation="update"):
            async with self.locks.hold(tenant_id):
                current = await self._require(tenant_id)

                config = copy.deepcopy(current.config)
                for key, value in request.config_updates().items():
                    config[key] = copy.deepcopy(value)

                tenant = replace(
                    current,
                    display_name=request.display_name or current.display_name,
                    config=config,
                    resources=current.resources.merge(request.resources),
                )

                await self._render_and_apply(tenant)

                try:
                    await self.store.update(tenant)
                except StoreError as e:
                    raise PersistenceError(str(e), tenant_id, "update") from e

                logger.info("tenant_updated", namespace=tenant.namespace)
                return tenant

    # -------------------------------------------------------------------------
    # Delete / restart
    # -------------------------------------------------------------------------

    async def delete(self, tenant_id: str) -> None:
        """Delete the tenant namespace, then its record.

        Raises:
            NotFoundError: Unknown tenant (no cluster call is made)
            RemoteError: Namespace deletion failed; the record is kept
            PersistenceError: The record could not be removed
        """
        with LogContext(tenant_id=tenant_id, operation="delete"):
            async with self.locks.hold(tenant_id):
                tenant = await self._require(tenant_id)
                await self.applier.delete_namespace(tenant.namespace)
                try:
                    await self.store.delete(tenant_id)
                except StoreError as e:
                    raise PersistenceError(str(e), tenant_id, "delete") from e
                logger.info("tenant_deleted", namespace=tenant.namespace)

    async def restart(self, tenant_id: str) -> None:
        """Rolling-restart the agent, then the gateway.

        Raises:
            NotFoundError: Unknown tenant
            RemoteError: A restart failed; later workloads are not touched
        """
        with LogContext(tenant_id=tenant_id, operation="restart"):
            async with self.locks.hold(tenant_id):
                tenant = await self._require(tenant_id)
                for workload in (AGENT_WORKLOAD, GATEWAY_WORKLOAD):
                    await self.applier.restart_deployment(tenant.namespace, workload)
                logger.info("tenant_restarted", namespace=tenant.namespace)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get(self, tenant_id: str) -> Tenant | None:
        try:
            return await self.store.get(tenant_id)
        except StoreError as e:
            raise PersistenceError(str(e), tenant_id, "get") from e

    async def _require(self, tenant_id: str) -> Tenant:
        tenant = await self._get(tenant_id)
        if tenant is None:
            raise NotFoundError(tenant_id)
        return tenant

    async def _render_and_apply(self, tenant: Tenant) -> int:
        manifests = self.renderer.render_all(tenant.to_vars(self.image))
        try:
            return await self.applier.apply(manifests)
        except ManifestParseError as e:
            raise RenderError(f"Rendered manifests are not valid: {e}") from e
