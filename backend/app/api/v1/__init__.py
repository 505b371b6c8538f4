"""API v1 router aggregation."""

from fastapi import APIRouter

from app.api.v1.scout import router as scout_router
from app.api.v1.maintenance import router as maintenance_router

router = APIRouter(prefix="/api/v1")

router.include_router(scout_router)
router.include_router(maintenance_router)
