from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from vacation_scheduler.api.health import router as health_router
from vacation_scheduler.api.router import api_router
from vacation_scheduler.config import get_settings
from vacation_scheduler.db import create_tables, dispose_engine
from vacation_scheduler.exceptions import setup_exception_handlers
from vacation_scheduler.middleware import setup_middleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from vacation_scheduler.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Configure logging, optionally create tables, and release the engine on shutdown."""
    settings = get_settings()
    configure_logging(settings)
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)

    if settings.create_tables_on_startup:
        await create_tables()
        logger.info("Database tables created from model metadata")

    try:
        yield
    finally:
        await dispose_engine()
        logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Build the vacation scheduler application.

    Interactive docs are served outside production only.
    """
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
    )

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()
