"""FastAPI application factory and entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from studyslot import __version__
from studyslot.api.middleware import CorrelationIdMiddleware, add_exception_handlers
from studyslot.api.routes import experiments, registrations, reviews, sessions, system
from studyslot.cache import create_user_cache
from studyslot.config import Settings
from studyslot.db import Database
from studyslot.logging import configure_logging
from studyslot.service import SchedulingService
from studyslot.users import UserDirectory

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = structlog.get_logger()


def wire_state(app: FastAPI, db: Database, settings: Settings) -> None:
    """Attach the store, user directory and service to ``app.state``."""
    app.state.db = db
    app.state.settings = settings
    app.state.users = UserDirectory(db, create_user_cache(settings))
    app.state.service = SchedulingService(db)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize DB, cache and settings on startup, cleanup on shutdown."""
    settings = Settings()
    settings.ensure_data_dir()

    configure_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
    )

    db = Database(
        settings.db_path,
        max_retries=settings.store_max_retries,
        retry_base_delay=settings.store_retry_base_delay,
        worker_id=settings.worker_id,
    )
    db.init_schema()
    wire_state(app, db, settings)

    logger.info("api_started", host=settings.api_host, port=settings.api_port)
    yield

    db.close()
    logger.info("api_stopped")


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title="StudySlot",
        description="Research study scheduling API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(CorrelationIdMiddleware)
    add_exception_handlers(app)

    app.mount("/metrics", make_asgi_app())

    prefix = "/api"
    app.include_router(system.router, prefix=prefix)
    app.include_router(reviews.router, prefix=prefix)
    app.include_router(experiments.router, prefix=prefix)
    app.include_router(sessions.router, prefix=prefix)
    app.include_router(registrations.router, prefix=prefix)

    return app


def main() -> None:
    """Entry point for `studyslot-api` command."""
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "studyslot.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
    )
