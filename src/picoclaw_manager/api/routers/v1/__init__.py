"""API v1 routers."""

from fastapi import APIRouter

from .tenants import router as tenants_router

# Create v1 router that includes all v1 endpoints
router = APIRouter(prefix="/api/v1")

router.include_router(tenants_router)

__all__ = ["router", "tenants_router"]
