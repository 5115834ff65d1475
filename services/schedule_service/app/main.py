"""FastAPI application for the Schedule Service."""
from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.schedule_service.routers import occurrences_router, templates_router


def create_app() -> FastAPI:
    """Create and configure the Schedule Service FastAPI app."""
    app = FastAPI(
        title="Studio Schedule Service",
        version="0.1.0",
        description="Schedule templates and the class occurrences generated from them.",
    )

    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "schedule"}

    app.include_router(templates_router)
    app.include_router(occurrences_router)

    return app


app = create_app()
