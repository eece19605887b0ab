"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.health import router as health_router
from app.core.logging import configure_logging, get_logger
from app.core.middleware import RequestIdMiddleware
from app.features.seeder.routes import router as seeder_router
from app.shared.seeder.safety import evaluate_safety_gates

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging and report whether seeding writes are allowed."""
    settings = get_settings()

    configure_logging()
    logger.info(
        "app.startup_started",
        app_name=settings.app_name,
        app_env=settings.app_env,
        debug=settings.debug,
    )

    # Seeding runs re-check the gates per request; this only surfaces the posture.
    report = evaluate_safety_gates(settings)
    if report.blocked:
        logger.warning(
            "seeder.safety.writes_blocked",
            blocked_gate=report.blocked_gate,
            reason=report.blocked_reason,
            db_host=report.db_host,
        )
    else:
        logger.info(
            "seeder.safety.writes_allowed",
            toolkit_env=report.toolkit_env,
            db_host=report.db_host,
            db_classification=report.db_classification.value,
        )

    yield

    logger.info("app.shutdown_completed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Deterministic synthetic marketing data seeding service",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(seeder_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("app.main:app", host=_settings.api_host, port=_settings.api_port)
