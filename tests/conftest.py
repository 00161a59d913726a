"""Pytest fixtures for picoclaw-manager tests."""

import json
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from picoclaw_manager.config.settings import DEFAULT_TEMPLATE_DIR, Settings
from picoclaw_manager.db.models.base import Base
from picoclaw_manager.k8s.applier import ClusterApplier
from picoclaw_manager.k8s.client import ClusterConfig, KubernetesClient
from picoclaw_manager.templates.renderer import ManifestRenderer
from picoclaw_manager.tenant.orchestrator import TenantOrchestrator
from picoclaw_manager.tenant.store import SQLAlchemyTenantStore

TEST_IMAGE = "example.com/picoclaw:test"
TEST_API_KEY = "test-api-secret"


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Fake Kubernetes API server
# =============================================================================

# group-version path -> [(resource, kind, namespaced)]
DISCOVERY: dict[str, list[tuple[str, str, bool]]] = {
    "/api/v1": [
        ("namespaces", "Namespace", False),
        ("namespaces/status", "Namespace", False),
        ("configmaps", "ConfigMap", True),
        ("persistentvolumeclaims", "PersistentVolumeClaim", True),
        ("serviceaccounts", "ServiceAccount", True),
        ("services", "Service", True),
        ("services/status", "Service", True),
    ],
    "/apis/apps/v1": [
        ("deployments", "Deployment", True),
        ("deployments/status", "Deployment", True),
        ("deployments/scale", "Scale", True),
    ],
    "/apis/rbac.authorization.k8s.io/v1": [
        ("roles", "Role", True),
        ("rolebindings", "RoleBinding", True),
        ("clusterroles", "ClusterRole", False),
    ],
}

APPLY_CONTENT_TYPE = "application/apply-patch+yaml"
MERGE_CONTENT_TYPE = "application/strategic-merge-patch+json"


def _status(code: int, message: str, reason: str = "Failure") -> httpx.Response:
    return httpx.Response(
        code,
        json={"kind": "Status", "status": "Failure", "message": message, "reason": reason, "code": code},
    )


class FakeApiServer:
    """In-memory stand-in for the API server, served through ``httpx.MockTransport``.

    Objects applied with server-side apply are kept by path. ``fail`` makes
    a given method and path answer with an error status.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.objects: dict[str, dict] = {}
        self.deployment_status: dict[str, dict] = {}
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}

    def fail(self, method: str, path: str, status_code: int = 500, message: str = "injected failure") -> None:
        self.failures[(method, path)] = (status_code, message)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        method = request.method

        if (method, path) in self.failures:
            code, message = self.failures[(method, path)]
            return _status(code, message)

        if method == "GET" and path in DISCOVERY:
            return httpx.Response(200, json={
                "kind": "APIResourceList",
                "groupVersion": path.removeprefix("/api/").removeprefix("/apis/"),
                "resources": [
                    {"name": name, "kind": kind, "namespaced": namespaced}
                    for name, kind, namespaced in DISCOVERY[path]
                ],
            })

        if method == "PATCH" and request.headers.get("Content-Type") == APPLY_CONTENT_TYPE:
            body = json.loads(request.content)
            self.objects[path] = body
            return httpx.Response(200, json=body)

        if method == "PATCH" and request.headers.get("Content-Type") == MERGE_CONTENT_TYPE:
            if path not in self.objects:
                return _status(404, f"{path} not found", "NotFound")
            patch = json.loads(request.content)
            annotations = patch["spec"]["template"]["metadata"]["annotations"]
            template = self.objects[path].setdefault("spec", {}).setdefault("template", {})
            template.setdefault("metadata", {}).setdefault("annotations", {}).update(annotations)
            return httpx.Response(200, json=self.objects[path])

        if method == "DELETE" and path.startswith("/api/v1/namespaces/"):
            namespace = path.rsplit("/", 1)[1]
            if path not in self.objects:
                return _status(404, f'namespaces "{namespace}" not found', "NotFound")
            for key in [k for k in self.objects if k == path or f"/namespaces/{namespace}/" in k]:
                del self.objects[key]
            return httpx.Response(200, json={"kind": "Namespace", "status": {"phase": "Terminating"}})

        if method == "GET" and path in self.objects:
            body = dict(self.objects[path])
            body["status"] = self.deployment_status.get(path, {})
            return httpx.Response(200, json=body)

        return _status(404, f"{path} not found", "NotFound")

    # -- inspection helpers ---------------------------------------------------

    def calls(self, method: str, content_type: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method
            and (content_type is None or r.headers.get("Content-Type") == content_type)
        ]

    @property
    def applied(self) -> list[httpx.Request]:
        return self.calls("PATCH", APPLY_CONTENT_TYPE)

    @property
    def discovery_calls(self) -> list[httpx.Request]:
        return [r for r in self.calls("GET") if r.url.path in DISCOVERY]

    @property
    def mutations(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method in ("PATCH", "DELETE", "POST", "PUT")]


@pytest.fixture
def fake_cluster() -> FakeApiServer:
    return FakeApiServer()


@pytest_asyncio.fixture
async def k8s_client(fake_cluster: FakeApiServer) -> AsyncGenerator[KubernetesClient, None]:
    client = KubernetesClient(
        ClusterConfig(server="https://k8s.test", token="cluster-token"),
        transport=fake_cluster.transport(),
    )
    yield client
    await client.aclose()


@pytest.fixture
def applier(k8s_client: KubernetesClient) -> ClusterApplier:
    return ClusterApplier(k8s_client)


@pytest.fixture
def renderer() -> ManifestRenderer:
    return ManifestRenderer(DEFAULT_TEMPLATE_DIR)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> SQLAlchemyTenantStore:
    return SQLAlchemyTenantStore(session_factory)


@pytest.fixture
def orchestrator(
    store: SQLAlchemyTenantStore,
    renderer: ManifestRenderer,
    applier: ClusterApplier,
) -> TenantOrchestrator:
    return TenantOrchestrator(store, renderer, applier, image=TEST_IMAGE)


# =============================================================================
# API test fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create settings for API testing."""
    return Settings(
        API_KEY=SecretStr(TEST_API_KEY),
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        PICOCLAW_IMAGE=TEST_IMAGE,
        ENVIRONMENT="test",
        DEBUG=True,
        log_level="DEBUG",
    )


@pytest.fixture
def test_app(
    test_settings: Settings,
    test_engine: AsyncEngine,
    orchestrator: TenantOrchestrator,
) -> FastAPI:
    """Create a FastAPI test application.

    ``ASGITransport`` does not run the lifespan, so the collaborators it
    would build are attached to the app state directly.
    """
    from picoclaw_manager.api.app import create_app

    app = create_app(settings=test_settings)
    app.state.engine = test_engine
    app.state.orchestrator = orchestrator
    return app


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Provides an httpx.AsyncClient configured to call the test application
    directly without network overhead.
    """
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client


@pytest_asyncio.fixture
async def authenticated_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client carrying the test API key."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {TEST_API_KEY}"},
    ) as client:
        yield client
