"""Tenant domain model.

A tenant is one customer's isolated set of cluster resources (everything in
its ``picoclaw-tenant-<id>`` namespace) plus the metadata record kept in the
tenant store. This module holds the record type, the resource-limit value
object, lifecycle request types, and the fixed naming constants shared by the
orchestrator and the manifest templates.
"""

import copy
import json
import re
from dataclasses import dataclass, field, fields, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from picoclaw_manager.core.exceptions import ValidationError
from picoclaw_manager.k8s.types import DeploymentStatus

# =============================================================================
# Naming constants
# =============================================================================

NAMESPACE_PREFIX = "picoclaw-tenant-"

# Namespace names are DNS labels (max 63 chars); the prefix takes 16 of them.
MAX_TENANT_ID_LENGTH = 63 - len(NAMESPACE_PREFIX)

TENANT_ID_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9\-]{0,61}[a-z0-9])?$")

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "picoclaw-manager"
TENANT_LABEL = "picoclaw.io/tenant"

AGENT_WORKLOAD = "picoclaw-agent"
GATEWAY_WORKLOAD = "picoclaw-gateway"

AGENT_REPLICAS = 1

DEFAULT_GATEWAY_HOST = "0.0.0.0"
DEFAULT_GATEWAY_PORT = 18790

# Top-level config keys callers may supply; each is carried verbatim.
PASSTHROUGH_CONFIG_KEYS = ("providers", "agents", "channels")


class TenantStatus(str, Enum):
    """Lifecycle status of a tenant record."""

    PROVISIONING = "provisioning"
    ACTIVE = "active"


# =============================================================================
# Resource limits
# =============================================================================


@dataclass(frozen=True)
class Resources:
    """Kubernetes quantity strings for a tenant's workloads.

    A stored or rendered ``Resources`` is always fully populated. Partially
    filled instances only appear as overrides passed to :meth:`merge`, where
    an empty string means "keep the current value".
    """

    agent_cpu: str = ""
    agent_memory: str = ""
    gateway_cpu: str = ""
    gateway_memory: str = ""
    workspace_size: str = ""

    @classmethod
    def default(cls) -> "Resources":
        return cls(
            agent_cpu="500m",
            agent_memory="1Gi",
            gateway_cpu="250m",
            gateway_memory="512Mi",
            workspace_size="500Mi",
        )

    def merge(self, override: "Resources | None") -> "Resources":
        """Return a copy with every non-empty field of ``override`` applied."""
        if override is None:
            return self
        updates = {
            f.name: getattr(override, f.name)
            for f in fields(self)
            if getattr(override, f.name)
        }
        return replace(self, **updates)

    def to_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Resources":
        data = data or {}
        return cls(**{f.name: data.get(f.name) or "" for f in fields(cls)})


# =============================================================================
# Tenant record
# =============================================================================


def namespace_for(tenant_id: str) -> str:
    """Namespace owning every cluster resource of ``tenant_id``."""
    return NAMESPACE_PREFIX + tenant_id


def validate_tenant_id(tenant_id: str) -> None:
    """Check ``tenant_id`` against the DNS-label grammar and length limit.

    Raises:
        ValidationError: If the ID is empty, too long, or malformed
    """
    if not tenant_id:
        raise ValidationError("tenant_id is required", field="tenant_id")
    if len(tenant_id) > MAX_TENANT_ID_LENGTH:
        raise ValidationError(
            f"tenant_id too long (max {MAX_TENANT_ID_LENGTH} characters)",
            field="tenant_id",
        )
    if not TENANT_ID_PATTERN.match(tenant_id):
        raise ValidationError(
            "tenant_id must be a valid DNS label "
            "(lowercase alphanumeric and hyphens, no leading or trailing hyphen)",
            field="tenant_id",
        )


def build_config(
    providers: Any = None,
    agents: Any = None,
    channels: Any = None,
) -> dict[str, Any]:
    """Build a tenant config document from the fixed gateway skeleton.

    Keys whose value is ``None`` are left out entirely.
    """
    config: dict[str, Any] = {
        "gateway": {"host": DEFAULT_GATEWAY_HOST, "port": DEFAULT_GATEWAY_PORT},
    }
    supplied = {"providers": providers, "agents": agents, "channels": channels}
    for key in PASSTHROUGH_CONFIG_KEYS:
        if supplied[key] is not None:
            config[key] = copy.deepcopy(supplied[key])
    return config


@dataclass
class Tenant:
    """A provisioned tenant as recorded in the tenant store."""

    id: str
    display_name: str
    namespace: str
    config: dict[str, Any]
    resources: Resources
    status: TenantStatus = TenantStatus.PROVISIONING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def config_json(self) -> str:
        """Serialized config document, as mounted into the agent pods."""
        return json.dumps(self.config, indent=2)

    def to_vars(self, image: str) -> "TenantVars":
        """Template variables for rendering this tenant's manifests."""
        return TenantVars(
            tenant_id=self.id,
            namespace=self.namespace,
            config_json=self.config_json(),
            image=image,
            agent_replicas=AGENT_REPLICAS,
            agent_cpu=self.resources.agent_cpu,
            agent_memory=self.resources.agent_memory,
            gateway_cpu=self.resources.gateway_cpu,
            gateway_memory=self.resources.gateway_memory,
            workspace_size=self.resources.workspace_size,
            labels={MANAGED_BY_LABEL: MANAGED_BY_VALUE, TENANT_LABEL: self.id},
        )


@dataclass(frozen=True)
class TenantVars:
    """Variables handed to the manifest renderer."""

    tenant_id: str
    namespace: str
    config_json: str
    image: str
    agent_replicas: int
    agent_cpu: str
    agent_memory: str
    gateway_cpu: str
    gateway_memory: str
    workspace_size: str
    labels: dict[str, str]

    def to_context(self) -> dict[str, Any]:
        """Template context; each field becomes a top-level template variable."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


# =============================================================================
# Lifecycle requests
# =============================================================================


@dataclass
class CreateTenantRequest:
    """Parameters for provisioning a new tenant.

    ``providers``, ``agents`` and ``channels`` are opaque JSON values; ``None``
    means "not supplied".
    """

    tenant_id: str
    display_name: str
    providers: Any = None
    agents: Any = None
    channels: Any = None
    resources: Resources | None = None


@dataclass
class UpdateTenantRequest:
    """Parameters for updating an existing tenant.

    Every field is optional. An empty ``display_name`` leaves the name as is;
    a supplied config key replaces that whole key of the stored document.
    """

    display_name: str = ""
    providers: Any = None
    agents: Any = None
    channels: Any = None
    resources: Resources | None = None

    def config_updates(self) -> dict[str, Any]:
        """Supplied top-level config keys and their new values."""
        supplied = {"providers": self.providers, "agents": self.agents, "channels": self.channels}
        return {key: value for key, value in supplied.items() if value is not None}


@dataclass(frozen=True)
class TenantWorkloadStatus:
    """Replica counts for both workloads of a tenant."""

    tenant_id: str
    agent: DeploymentStatus
    gateway: DeploymentStatus
