"""Merchant Onboarding API — FastAPI application factory."""


import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onboarding.core.config import Settings, settings as default_settings
from onboarding.core.exceptions import register_exception_handlers
from onboarding.db.base import create_database
from onboarding.middleware.audit import AuditMiddleware
from onboarding.schemas.common import HealthResponse
from onboarding.services.notifications import LoggingNotificationDispatcher, NotificationDispatcher
from onboarding.services.storage import LocalObjectStorage

# v1 routers
from onboarding.routers.v1.documents import router as documents_v1_router
from onboarding.routers.v1.merchants import router as merchants_v1_router
from onboarding.routers.v1.reviews import router as reviews_v1_router

logger = logging.getLogger(__name__)


def _configure_logging(settings: Settings) -> None:
    """Set up structured logging for the application."""
    level = logging.DEBUG if settings.is_development else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


def create_app(
    settings: Settings | None = None,
    notifier: NotificationDispatcher | None = None,
) -> FastAPI:
    settings = settings or default_settings
    _configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        db = create_database(settings.database_url)
        if settings.auto_create_tables:
            await db.create_tables()
        Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
        app.state.db = db
        app.state.storage = LocalObjectStorage(settings.upload_dir)
        logger.info("Database ready (%s)", settings.database_url.split("://", 1)[0])

        yield

        # Shutdown
        await db.dispose()
        logger.info("Database connections closed")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.notifier = notifier or LoggingNotificationDispatcher()

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Audit middleware ---
    app.add_middleware(AuditMiddleware)

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- v1 API routes (/api/v1/*) ---
    app.include_router(merchants_v1_router, prefix="/api/v1")
    app.include_router(documents_v1_router, prefix="/api/v1")
    app.include_router(reviews_v1_router, prefix="/api/v1")

    # --- Health check ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(app=settings.app_name, env=settings.app_env)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "onboarding.main:app",
        host=default_settings.app_host,
        port=default_settings.app_port,
        reload=default_settings.is_development,
    )
