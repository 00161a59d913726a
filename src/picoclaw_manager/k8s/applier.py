"""Generic server-side apply of manifest streams.

The applier knows no resource kinds ahead of time. Each document's
``apiVersion`` and ``kind`` are resolved against live discovery, then the
document is sent as a server-side apply patch under a fixed field manager.
"""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from picoclaw_manager.k8s.client import KubernetesClient
from picoclaw_manager.k8s.discovery import DiscoveryRESTMapper, RESTMapper
from picoclaw_manager.k8s.manifest import parse_manifest_stream
from picoclaw_manager.k8s.types import DeploymentStatus

logger = structlog.get_logger()

FIELD_MANAGER = "picoclaw-manager"
DEFAULT_NAMESPACE = "default"
RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"

APPLY_PATCH = "application/apply-patch+yaml"
STRATEGIC_MERGE_PATCH = "application/strategic-merge-patch+json"


class ClusterApplier:
    """Applies manifests and performs namespace/workload operations.

    Every method makes single-attempt calls; a failure raises
    :class:`~picoclaw_manager.core.exceptions.RemoteError` and documents
    already applied in the same call stay applied.

    Example:
        applier = ClusterApplier(client)
        count = await applier.apply(manifest_yaml)
    """

    def __init__(
        self,
        client: KubernetesClient,
        mapper_factory: Callable[[KubernetesClient], RESTMapper] = DiscoveryRESTMapper,
    ) -> None:
        self.client = client
        self._mapper_factory = mapper_factory

    async def apply(self, manifests: bytes | str) -> int:
        """Apply every document of ``manifests`` in stream order.

        Returns:
            Number of documents submitted

        Raises:
            ManifestParseError: If a document is not a YAML mapping or has no JSON form
            RemoteError: If discovery or an apply patch fails
        """
        documents = parse_manifest_stream(manifests)
        mapper = self._mapper_factory(self.client)

        for document in documents:
            mapping = await mapper.resolve(document.gvk)
            namespace = None
            if mapping.namespaced:
                namespace = document.namespace or DEFAULT_NAMESPACE

            await self.client.request(
                "PATCH",
                mapping.path(document.name, namespace),
                operation="apply",
                kind=document.kind,
                name=document.name,
                namespace=namespace,
                params={"fieldManager": FIELD_MANAGER},
                # JSON is a subset of YAML, so the apply endpoint accepts it
                json=document.body,
                content_type=APPLY_PATCH,
            )
            logger.info(
                "manifest_applied",
                kind=document.kind,
                name=document.name,
                namespace=namespace,
            )

        return len(documents)

    async def delete_namespace(self, namespace: str) -> None:
        """Request namespace deletion. Does not wait for finalization."""
        await self.client.request(
            "DELETE",
            f"/api/v1/namespaces/{namespace}",
            operation="delete_namespace",
            kind="Namespace",
            name=namespace,
        )
        logger.info("namespace_deleted", namespace=namespace)

    async def restart_deployment(self, namespace: str, name: str) -> None:
        """Trigger a rolling restart by stamping the pod template.

        Same mechanism as ``kubectl rollout restart``; does not wait for the
        rollout to finish.
        """
        patch = {
            "spec": {
                "template": {
                    "metadata": {
                        "annotations": {
                            RESTARTED_AT_ANNOTATION: datetime.now(UTC).isoformat(timespec="seconds"),
                        }
                    }
                }
            }
        }
        await self.client.request(
            "PATCH",
            f"/apis/apps/v1/namespaces/{namespace}/deployments/{name}",
            operation="restart",
            kind="Deployment",
            name=name,
            namespace=namespace,
            json=patch,
            content_type=STRATEGIC_MERGE_PATCH,
        )
        logger.info("deployment_restarted", namespace=namespace, name=name)

    async def get_deployment_status(self, namespace: str, name: str) -> DeploymentStatus:
        response = await self.client.request(
            "GET",
            f"/apis/apps/v1/namespaces/{namespace}/deployments/{name}",
            operation="get_status",
            kind="Deployment",
            name=name,
            namespace=namespace,
        )
        status = response.json().get("status") or {}
        return DeploymentStatus(
            ready_replicas=int(status.get("readyReplicas") or 0),
            replicas=int(status.get("replicas") or 0),
        )
