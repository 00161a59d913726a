"""Async HTTP client for the Kubernetes API server.

Connection settings come from the in-cluster service account when running
inside a pod, otherwise from a kubeconfig file. Every request is a single
attempt: failures surface immediately as :class:`RemoteError`.
"""

import base64
import os
import ssl
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import structlog
import yaml

from picoclaw_manager.core.exceptions import RemoteError
from picoclaw_manager.core.logging import log_external_call
from picoclaw_manager.utils.exceptions import ConfigurationError

logger = structlog.get_logger()

SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
DEFAULT_KUBECONFIG = Path("~/.kube/config")


@dataclass
class ClusterConfig:
    """Where and how to reach the API server."""

    server: str
    verify: ssl.SSLContext | bool = True
    token: str | None = None
    source: str = "explicit"

    @property
    def headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}


# =============================================================================
# Config loading
# =============================================================================


def load_cluster_config(kubeconfig: str | None = None) -> ClusterConfig:
    """Resolve cluster connection settings.

    Order: in-cluster service account, then ``kubeconfig`` if given, then
    ``$KUBECONFIG`` or ``~/.kube/config``.

    Raises:
        ConfigurationError: If no usable configuration is found
    """
    config = load_incluster_config()
    if config is not None:
        return config

    if kubeconfig:
        path = Path(kubeconfig)
    elif os.environ.get("KUBECONFIG"):
        # Only the first entry of a merged KUBECONFIG list is read
        path = Path(os.environ["KUBECONFIG"].split(os.pathsep)[0])
    else:
        path = DEFAULT_KUBECONFIG

    return load_kubeconfig(path.expanduser())


def load_incluster_config(
    service_account_dir: Path = SERVICE_ACCOUNT_DIR,
) -> ClusterConfig | None:
    """Service-account config when running in a pod, else ``None``."""
    host = os.environ.get("KUBERNETES_SERVICE_HOST")
    port = os.environ.get("KUBERNETES_SERVICE_PORT")
    token_file = service_account_dir / "token"
    if not host or not port or not token_file.is_file():
        return None

    if ":" in host:
        host = f"[{host}]"

    ca_file = service_account_dir / "ca.crt"
    verify: ssl.SSLContext | bool = True
    if ca_file.is_file():
        verify = ssl.create_default_context(cafile=str(ca_file))

    return ClusterConfig(
        server=f"https://{host}:{port}",
        verify=verify,
        token=token_file.read_text().strip(),
        source="in-cluster",
    )


def load_kubeconfig(path: Path, context: str | None = None) -> ClusterConfig:
    """Read the selected (default: current) context of a kubeconfig file.

    Supports server URL, CA file/data, insecure-skip-tls-verify, bearer
    token/tokenFile and client certificate/key files or data. Exec and
    auth-provider plugins are not supported.

    Raises:
        ConfigurationError: If the file is missing or incomplete
    """
    try:
        raw = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigurationError(f"Cannot read kubeconfig {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid kubeconfig {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Invalid kubeconfig {path}: not a mapping")

    context_name = context or raw.get("current-context")
    if not context_name:
        raise ConfigurationError(f"Kubeconfig {path} has no current-context")

    ctx = _named(raw, "contexts", context_name, "context")
    cluster = _named(raw, "clusters", ctx.get("cluster"), "cluster")
    user = _named(raw, "users", ctx.get("user"), "user") if ctx.get("user") else {}

    server = cluster.get("server")
    if not server:
        raise ConfigurationError(f"Cluster {ctx.get('cluster')!r} has no server")

    if user.get("exec") or user.get("auth-provider"):
        logger.warning("kubeconfig_auth_plugin_ignored", context=context_name)

    token = user.get("token")
    if not token and user.get("tokenFile"):
        token = _resolve(path, user["tokenFile"]).read_text().strip()

    return ClusterConfig(
        server=server,
        verify=_build_tls(path, cluster, user),
        token=token,
        source=f"kubeconfig:{path}#{context_name}",
    )


def _named(raw: dict[str, Any], section: str, name: str | None, key: str) -> dict[str, Any]:
    for entry in raw.get(section) or []:
        if entry.get("name") == name:
            return entry.get(key) or {}
    raise ConfigurationError(f"Kubeconfig has no {key} named {name!r}")


def _resolve(kubeconfig: Path, value: str) -> Path:
    """Paths in a kubeconfig are relative to the file itself."""
    p = Path(value).expanduser()
    return p if p.is_absolute() else kubeconfig.parent / p


def _build_tls(path: Path, cluster: dict[str, Any], user: dict[str, Any]) -> ssl.SSLContext | bool:
    if cluster.get("insecure-skip-tls-verify"):
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    elif cluster.get("certificate-authority-data"):
        ca = base64.b64decode(cluster["certificate-authority-data"]).decode()
        ctx = ssl.create_default_context(cadata=ca)
    elif cluster.get("certificate-authority"):
        ctx = ssl.create_default_context(
            cafile=str(_resolve(path, cluster["certificate-authority"]))
        )
    else:
        ctx = ssl.create_default_context()

    cert_data = user.get("client-certificate-data")
    key_data = user.get("client-key-data")
    if cert_data and key_data:
        # load_cert_chain only accepts file paths
        with tempfile.TemporaryDirectory() as tmp:
            cert_file = Path(tmp) / "client.crt"
            key_file = Path(tmp) / "client.key"
            cert_file.write_bytes(base64.b64decode(cert_data))
            key_file.write_bytes(base64.b64decode(key_data))
            ctx.load_cert_chain(str(cert_file), str(key_file))
    elif user.get("client-certificate") and user.get("client-key"):
        ctx.load_cert_chain(
            str(_resolve(path, user["client-certificate"])),
            str(_resolve(path, user["client-key"])),
        )

    return ctx


# =============================================================================
# Client
# =============================================================================


class KubernetesClient:
    """Thin async wrapper over ``httpx.AsyncClient`` for API server calls.

    Example:
        client = KubernetesClient(load_cluster_config())
        response = await client.request(
            "GET", "/api/v1/namespaces/default",
            operation="get", kind="Namespace", name="default",
        )
        await client.aclose()
    """

    def __init__(
        self,
        config: ClusterConfig,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Cluster connection settings
            timeout: Per-request timeout in seconds
            transport: Optional transport override (used by tests)
        """
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.server,
            headers={"Accept": "application/json", **config.headers},
            verify=config.verify,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "KubernetesClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        kind: str,
        name: str = "",
        namespace: str | None = None,
        params: dict[str, str] | None = None,
        json: Any = None,
        content_type: str | None = None,
    ) -> httpx.Response:
        """Send one request and return the successful response.

        ``operation``, ``kind``, ``name`` and ``namespace`` describe the call
        for logging and for the :class:`RemoteError` raised on failure.

        Raises:
            RemoteError: On transport failure or any non-2xx status
        """
        headers = {"Content-Type": content_type} if content_type else None
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            log_external_call(
                logger, "kubernetes", operation, (time.perf_counter() - start) * 1000,
                success=False, kind=kind, name=name, namespace=namespace, error=str(e),
            )
            raise RemoteError(
                f"{type(e).__name__}: {e}",
                operation=operation, kind=kind, name=name, namespace=namespace,
            ) from e

        duration_ms = (time.perf_counter() - start) * 1000
        success = response.is_success
        log_external_call(
            logger, "kubernetes", operation, duration_ms, success=success,
            kind=kind, name=name, namespace=namespace, status_code=response.status_code,
        )

        if not success:
            raise RemoteError(
                _status_message(response),
                operation=operation, kind=kind, name=name, namespace=namespace,
                status_code=response.status_code,
            )
        return response


def _status_message(response: httpx.Response) -> str:
    """Extract the message of a ``Status`` error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        reason = body.get("reason") or response.reason_phrase
        return f"{response.status_code} {reason}: {body['message']}"
    return f"{response.status_code} {response.reason_phrase}"
