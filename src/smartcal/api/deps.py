# Shared FastAPI dependencies for the API layer.
# Created: 2026-10-06
#
# Services are built once by create_app() and kept on app.state; handlers
# reach them through these dependencies so tests can swap in their own.

from __future__ import annotations

from fastapi import HTTPException, Request

from smartcal.extraction.service import EventExtractionService
from smartcal.scheduler.notifications import LoggingNotificationSink
from smartcal.scheduler.scheduler import ReminderScheduler


def get_extraction_service(request: Request) -> EventExtractionService:
    return request.app.state.extraction_service


def get_scheduler(request: Request) -> ReminderScheduler:
    return request.app.state.scheduler


def get_logging_sink(request: Request) -> LoggingNotificationSink:
    sink = getattr(request.app.state, "sink", None)
    if not isinstance(sink, LoggingNotificationSink):
        raise HTTPException(
            status_code=404,
            detail="Notification history is only available with the logging sink",
        )
    return sink
