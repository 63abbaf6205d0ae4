"""FastAPI application for ``smartcal serve``.

``create_app()`` builds the extraction service, the scheduler and the
notification sink (unless the caller supplies its own), keeps them on
``app.state`` and ties the scheduler to the application lifespan: it is
initialized on startup (restoring persisted reminders and starting the
periodic check task) and stopped on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from smartcal import __version__
from smartcal.config import Settings, get_settings
from smartcal.extraction.ai_client import OllamaChatClient
from smartcal.extraction.service import EventExtractionService
from smartcal.scheduler.notifications import LoggingNotificationSink, NotificationSinkProtocol
from smartcal.scheduler.scheduler import ReminderScheduler
from smartcal.scheduler.store import FileKeyValueStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    extraction_service: EventExtractionService | None = None,
    scheduler: ReminderScheduler | None = None,
    sink: NotificationSinkProtocol | None = None,
) -> FastAPI:
    """Build the API application with explicitly constructed services."""
    from smartcal.api.v1 import mount_v1_routers

    settings = settings or get_settings()

    if extraction_service is None:
        ai_client = OllamaChatClient(settings) if settings.ai_extraction_enabled else None
        extraction_service = EventExtractionService(settings, ai_client=ai_client)

    if scheduler is None:
        store = FileKeyValueStore(settings.resolve_storage_dir())
        scheduler = ReminderScheduler(store=store, settings=settings)

    if sink is None:
        sink = LoggingNotificationSink()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler.initialize(sink)
        try:
            yield
        finally:
            scheduler.stop()

    app = FastAPI(
        title="SmartCal API",
        description="Natural-language event extraction and reminder scheduling.",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.extraction_service = extraction_service
    app.state.scheduler = scheduler
    app.state.sink = sink

    mount_v1_routers(app)
    return app


def run_api_server(
    settings: Settings | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Start the API server with uvicorn."""
    import uvicorn

    settings = settings or get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    logger.info(f"📅 SmartCal API docs: http://{host}:{port}/api/v1/docs")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())
