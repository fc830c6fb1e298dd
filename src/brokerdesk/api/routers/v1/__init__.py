"""API v1 routers."""

from fastapi import APIRouter

from .customers import router as customers_router
from .imports import router as imports_router
from .records import router as records_router

# Create v1 router that includes all v1 endpoints
router = APIRouter(prefix="/v1")

router.include_router(customers_router)
router.include_router(imports_router)
router.include_router(records_router)

__all__ = ["router", "customers_router", "imports_router", "records_router"]
