"""Types shared by the cluster client, REST mapper and applier."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ResourceScope(str, Enum):
    """Addressing scope of a resource type."""

    NAMESPACED = "namespaced"
    CLUSTER = "cluster"


@dataclass(frozen=True)
class GroupVersionKind:
    """Three-part type identifier of a cluster resource.

    The core API group is the empty string.
    """

    group: str
    version: str
    kind: str

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> "GroupVersionKind":
        """Split an ``apiVersion`` such as ``apps/v1`` or ``v1``."""
        group, _, version = api_version.rpartition("/")
        return cls(group=group, version=version, kind=kind)

    @property
    def group_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return f"{self.group_version}, Kind={self.kind}"


@dataclass(frozen=True)
class ResourceMapping:
    """Resolution of a GVK to its addressable collection."""

    gvk: GroupVersionKind
    resource: str
    scope: ResourceScope

    @property
    def namespaced(self) -> bool:
        return self.scope == ResourceScope.NAMESPACED

    def path(self, name: str, namespace: str | None = None) -> str:
        """API path of one named object of this resource type."""
        if self.gvk.group:
            base = f"/apis/{self.gvk.group}/{self.gvk.version}"
        else:
            base = f"/api/{self.gvk.version}"
        if self.namespaced:
            base = f"{base}/namespaces/{namespace}"
        return f"{base}/{self.resource}/{name}"


@dataclass
class ManifestDocument:
    """One resource document parsed from a manifest stream."""

    api_version: str
    kind: str
    name: str
    namespace: str
    body: dict[str, Any] = field(repr=False)

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind.from_api_version(self.api_version, self.kind)

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "ManifestDocument":
        metadata = body.get("metadata") or {}
        return cls(
            api_version=str(body.get("apiVersion") or ""),
            kind=str(body.get("kind") or ""),
            name=str(metadata.get("name") or ""),
            namespace=str(metadata.get("namespace") or ""),
            body=body,
        )


@dataclass(frozen=True)
class DeploymentStatus:
    """Point-in-time replica counts of one workload."""

    ready_replicas: int
    replicas: int

    @property
    def is_ready(self) -> bool:
        return self.replicas > 0 and self.ready_replicas >= self.replicas
