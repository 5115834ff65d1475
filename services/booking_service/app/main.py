"""FastAPI application for the Booking Service."""
from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.booking_service.routers import (
    admin_router,
    bookings_router,
    checkins_router,
    internal_router,
)


def create_app() -> FastAPI:
    """Create and configure the Booking Service FastAPI app."""
    app = FastAPI(
        title="Studio Booking Service",
        version="0.1.0",
        description="Bookings, session balances, check-ins and no-show reconciliation.",
    )

    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "booking"}

    app.include_router(bookings_router)
    app.include_router(checkins_router)
    app.include_router(admin_router)
    app.include_router(internal_router)

    return app


app = create_app()
