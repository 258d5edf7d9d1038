"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, error handlers,
routers, and the health endpoint. The module-level ``app`` instance
allows ``uvicorn src.api.app:app --reload``; ``run()`` backs the
``clinic-scribe-api`` console script.
"""

from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.error_handler import register_error_handlers
from src.api.routes import patients
from src.core.config import get_settings
from src.core.logging import configure_logging
from src.core.models import HealthResponse


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Clinic Scribe",
        description="Patient directory and live consultation transcription "
        f"for {settings.clinic_name}.",
        version="0.1.0",
    )

    # -- CORS --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:8501",  # Streamlit
            "http://localhost:3000",  # Dev frontend
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(timestamp=datetime.now(UTC))

    # -- REST routes --
    app.include_router(patients.router, prefix="/api/v1")

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` with uvicorn on the configured host/port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("src.api.app:app", host=settings.app_host, port=settings.app_port)
