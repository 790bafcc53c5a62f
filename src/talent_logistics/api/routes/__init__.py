"""API routes."""

from talent_logistics.api.routes.health import router as health_router
from talent_logistics.api.routes.readiness import router as readiness_router
from talent_logistics.api.routes.timecards import router as timecards_router

__all__ = ["health_router", "readiness_router", "timecards_router"]
