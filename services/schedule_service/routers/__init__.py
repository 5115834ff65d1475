"""Schedule service routers package."""

from services.schedule_service.routers.occurrences import router as occurrences_router
from services.schedule_service.routers.templates import router as templates_router

__all__ = ["occurrences_router", "templates_router"]
