"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sqlterm.api.routers import api_router
from sqlterm.config.settings import Settings, get_settings
from sqlterm.infrastructure.database.connection import Database
from sqlterm.infrastructure.llm.factory import create_llm_client
from sqlterm.infrastructure.logging.logger import setup_logging
from sqlterm.services.registry import build_services

settings = get_settings()

setup_logging(
    level=settings.log_level,
    json_output=not settings.debug,
    silence_noisy_loggers=True,
)

logger = logging.getLogger(__name__)


def _validate_startup_config(settings: Settings) -> None:
    """Validate required configuration at startup."""
    if not settings.anthropic_api_key:
        logger.warning("No AI API key configured (ANTHROPIC_API_KEY); /ai requests will fail")
    if not settings.database_url:
        logger.warning("DATABASE_URL is empty; SQL requests will fail")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup and shutdown lifecycle."""
    logger.info("Starting %s %s", settings.app_name, settings.app_version)
    _validate_startup_config(settings)

    database = Database(settings)
    services = build_services(settings, database, create_llm_client(settings))
    app.state.services = services

    try:
        await database.connect()
        await services.auth.ensure_table()
        logger.info("Database ready")
    except Exception as e:
        logger.error("Database initialization failed: %s", e, exc_info=True)

    yield

    logger.info("Shutting down %s", settings.app_name)
    try:
        await services.close()
    except Exception as e:
        logger.error("Error closing services: %s", e, exc_info=True)


app = FastAPI(
    title="sqlterm",
    description="Terminal-style SQL client with per-user PostgreSQL schemas and AI-assisted SQL",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials="*" not in settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")
