"""UEMP API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map UempError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - The document store and outbound clients are built in the lifespan and kept on
      app.state; nothing is a module-level singleton

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - SQLite URLs get their schema from create_all; Postgres is migrated by Alembic
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from uemp.api.error_handlers import register_error_handlers
from uemp.api.routes import (
    consumers, health, manufacturers, recyclers, registrations,
)
from uemp.config import get_settings
from uemp.infrastructure.database import DatabaseSessionManager
from uemp.infrastructure.document_store import SqlDocumentStore
from uemp.infrastructure.geocoding_client import GoogleGeocodingClient
from uemp.infrastructure.notification_client import SendGridNotificationClient
from uemp.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db_manager = DatabaseSessionManager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_url.startswith("sqlite"):
        await db_manager.create_all()
    app.state.db_manager = db_manager
    app.state.store = SqlDocumentStore(
        db_manager.session_factory,
        max_attempts=settings.transaction_max_attempts,
        base_delay_ms=settings.transaction_base_delay_ms,
        max_delay_ms=settings.transaction_max_delay_ms,
    )
    app.state.geocoder = GoogleGeocodingClient(
        settings.google_maps_api_key,
        base_url=settings.geocoding_url,
        timeout_seconds=settings.geocoding_timeout_seconds,
    )
    app.state.notifier = SendGridNotificationClient(
        settings.sendgrid_api_key,
        sender=settings.notification_sender,
        base_url=settings.sendgrid_url,
        timeout_seconds=settings.notification_timeout_seconds,
    )
    logger.info("UEMP API started")
    yield
    await db_manager.dispose()
    logger.info("UEMP API shutting down")


app = FastAPI(title="UEMP API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(manufacturers.router)
app.include_router(registrations.router)
app.include_router(consumers.router)
app.include_router(recyclers.router)

register_error_handlers(app)
