"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from picoclaw_manager.api.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
    request_validation_handler,
)
from picoclaw_manager.api.routers import health_router, v1_router
from picoclaw_manager.config.settings import Settings, get_settings
from picoclaw_manager.config.validation import get_configuration_summary, validate_or_raise
from picoclaw_manager.core.locks import TenantLocks
from picoclaw_manager.core.logging import setup_logging
from picoclaw_manager.db.config import (
    close_db,
    create_engine,
    create_session_factory,
    init_db,
)
from picoclaw_manager.k8s import ClusterApplier, KubernetesClient, load_cluster_config
from picoclaw_manager.templates import ManifestRenderer
from picoclaw_manager.tenant import SQLAlchemyTenantStore, TenantOrchestrator

logger = structlog.get_logger("picoclaw_manager.api")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the application factory that assembles all components:
    - Middleware (in correct order)
    - Routers
    - Exception handlers
    - Lifespan management

    Args:
        settings: Optional settings override (useful for testing)

    Returns:
        Configured FastAPI application

    Example:
        # Production
        app = create_app()

        # Testing
        app = create_app(settings=Settings(API_KEY=SecretStr("secret")))

        # Run with uvicorn
        uvicorn picoclaw_manager.api.app:create_app --factory
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="picoclaw-manager",
        description="Per-tenant picoclaw workload provisioning on Kubernetes",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    # Store settings on app state for access in dependencies
    app.state.settings = settings

    _configure_middleware(app)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    _configure_routers(app)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the tenant store, renderer, cluster client and orchestrator on
    startup and releases connections on shutdown. Any startup failure
    aborts the process.
    """
    settings: Settings = app.state.settings

    setup_logging(
        log_level=settings.log_level,
        json_format=settings.ENVIRONMENT == "production",
    )
    validate_or_raise(settings)
    logger.info("app_starting", **get_configuration_summary(settings))

    engine = create_engine(settings)
    await init_db(engine)
    logger.info("database_initialized")

    renderer = ManifestRenderer(settings.template_dir)

    cluster_config = load_cluster_config(settings.KUBECONFIG)
    client = KubernetesClient(cluster_config, timeout=settings.K8S_REQUEST_TIMEOUT)
    logger.info("cluster_client_configured", server=cluster_config.server, source=cluster_config.source)

    app.state.engine = engine
    app.state.orchestrator = TenantOrchestrator(
        store=SQLAlchemyTenantStore(create_session_factory(engine)),
        renderer=renderer,
        applier=ClusterApplier(client),
        image=settings.PICOCLAW_IMAGE,
        locks=TenantLocks(),
    )

    try:
        yield
    finally:
        logger.info("app_stopping")
        await client.aclose()
        await close_db(engine)


def _configure_middleware(app: FastAPI) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. RequestContextMiddleware - Assigns request ID, binds log context
    2. RequestLoggingMiddleware - Logs all requests
    3. ErrorHandlingMiddleware - Converts exceptions to HTTP responses
    4. AuthenticationMiddleware - Validates Bearer API key

    Note: Middleware is added in reverse order because Starlette
    processes them from last-added to first-added.
    """
    app.add_middleware(AuthenticationMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)


def _configure_routers(app: FastAPI) -> None:
    # Health check endpoints (no prefix - at root level)
    app.include_router(health_router)
    app.include_router(v1_router)
