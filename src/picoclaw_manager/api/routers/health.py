"""Health check endpoints."""

import time
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from picoclaw_manager.api.dependencies import get_engine
from picoclaw_manager.api.schemas.health import (
    ComponentHealth,
    HealthDetailResponse,
    HealthResponse,
    HealthStatus,
)
from picoclaw_manager.db.config import check_db

router = APIRouter(tags=["health"])

APP_VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Returns basic liveness status. No authentication required.",
)
async def health_check() -> HealthResponse:
    """Basic liveness check endpoint.

    Returns 200 if the application is running, regardless of
    dependency health.
    """
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/health/db",
    response_model=HealthDetailResponse,
    summary="Database health check",
    description="Checks database connectivity. No authentication required.",
)
async def health_db(
    engine: Annotated[AsyncEngine, Depends(get_engine)],
) -> HealthDetailResponse:
    """Database connectivity check with latency."""
    db_health = await _check_database(engine)
    return HealthDetailResponse(
        status=db_health.status,
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
        database=db_health,
    )


async def _check_database(engine: AsyncEngine) -> ComponentHealth:
    start = time.perf_counter()
    try:
        await check_db(engine)
    except (SQLAlchemyError, OSError) as e:
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database connection failed: {str(e)[:100]}",
            latency_ms=round(latency_ms, 2),
        )

    latency_ms = (time.perf_counter() - start) * 1000
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message="Database connection successful",
        latency_ms=round(latency_ms, 2),
    )
