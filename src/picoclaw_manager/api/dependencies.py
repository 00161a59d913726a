"""FastAPI dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from picoclaw_manager.tenant.orchestrator import TenantOrchestrator


def get_orchestrator(request: Request) -> TenantOrchestrator:
    """The orchestrator built during application startup."""
    return request.app.state.orchestrator


def get_engine(request: Request) -> AsyncEngine:
    return request.app.state.engine


Orchestrator = Annotated[TenantOrchestrator, Depends(get_orchestrator)]
