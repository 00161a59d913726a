"""Resolve resource kinds to API collections through live discovery."""

from typing import Protocol

import structlog

from picoclaw_manager.core.exceptions import RemoteError
from picoclaw_manager.k8s.client import KubernetesClient
from picoclaw_manager.k8s.types import GroupVersionKind, ResourceMapping, ResourceScope

logger = structlog.get_logger()


class RESTMapper(Protocol):
    """Maps a GVK to the collection that serves it."""

    async def resolve(self, gvk: GroupVersionKind) -> ResourceMapping: ...


class DiscoveryRESTMapper:
    """REST mapper backed by the API server's discovery endpoints.

    Each group-version is fetched at most once per mapper instance. The
    applier builds a new mapper for every apply call, so a CRD installed
    between two calls is picked up by the second one.
    """

    def __init__(self, client: KubernetesClient) -> None:
        self._client = client
        self._cache: dict[str, dict[str, ResourceMapping]] = {}

    async def resolve(self, gvk: GroupVersionKind) -> ResourceMapping:
        """Find the resource name and scope for ``gvk``.

        Raises:
            RemoteError: If discovery fails or the kind is not served
        """
        kinds = self._cache.get(gvk.group_version)
        if kinds is None:
            kinds = await self._discover(gvk)
            self._cache[gvk.group_version] = kinds

        mapping = kinds.get(gvk.kind)
        if mapping is None:
            raise RemoteError(
                f"no matches for kind {gvk.kind!r} in version {gvk.group_version!r}",
                operation="discover",
                kind=gvk.kind,
            )
        return mapping

    async def _discover(self, gvk: GroupVersionKind) -> dict[str, ResourceMapping]:
        if gvk.group:
            path = f"/apis/{gvk.group}/{gvk.version}"
        else:
            path = f"/api/{gvk.version}"

        try:
            response = await self._client.request(
                "GET", path, operation="discover", kind=gvk.kind
            )
        except RemoteError as e:
            if e.status_code == 404:
                raise RemoteError(
                    f"no matches for kind {gvk.kind!r}: "
                    f"group version {gvk.group_version!r} is not served",
                    operation="discover",
                    kind=gvk.kind,
                    status_code=404,
                ) from e
            raise

        kinds: dict[str, ResourceMapping] = {}
        for entry in response.json().get("resources") or []:
            name = entry.get("name", "")
            # Subresources such as deployments/status share the parent kind
            if not name or "/" in name:
                continue
            kind = GroupVersionKind(gvk.group, gvk.version, entry.get("kind", ""))
            scope = ResourceScope.NAMESPACED if entry.get("namespaced") else ResourceScope.CLUSTER
            kinds[kind.kind] = ResourceMapping(gvk=kind, resource=name, scope=scope)

        logger.debug(
            "discovery_loaded",
            group_version=gvk.group_version,
            resource_count=len(kinds),
        )
        return kinds
