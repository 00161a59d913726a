"""Kubernetes API access: connection config, discovery and server-side apply."""

from picoclaw_manager.k8s.applier import FIELD_MANAGER, ClusterApplier
from picoclaw_manager.k8s.client import (
    ClusterConfig,
    KubernetesClient,
    load_cluster_config,
    load_incluster_config,
    load_kubeconfig,
)
from picoclaw_manager.k8s.discovery import DiscoveryRESTMapper, RESTMapper
from picoclaw_manager.k8s.manifest import parse_manifest_stream, split_documents
from picoclaw_manager.k8s.types import (
    DeploymentStatus,
    GroupVersionKind,
    ManifestDocument,
    ResourceMapping,
    ResourceScope,
)

__all__ = [
    "FIELD_MANAGER",
    "ClusterApplier",
    "ClusterConfig",
    "DeploymentStatus",
    "DiscoveryRESTMapper",
    "GroupVersionKind",
    "KubernetesClient",
    "ManifestDocument",
    "RESTMapper",
    "ResourceMapping",
    "ResourceScope",
    "load_cluster_config",
    "load_incluster_config",
    "load_kubeconfig",
    "parse_manifest_stream",
    "split_documents",
]
