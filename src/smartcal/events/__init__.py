# Event contract shared by the extractor and the scheduler.
# Created: 2026-10-02

from smartcal.events.models import (
    DEFAULT_REMINDER_MINUTES,
    DEFAULT_TITLE,
    BatchExtractionResult,
    Event,
    EventPriority,
    EventType,
    ExtractionResult,
    ExtractionStats,
)

__all__ = [
    "DEFAULT_REMINDER_MINUTES",
    "DEFAULT_TITLE",
    "BatchExtractionResult",
    "Event",
    "EventPriority",
    "EventType",
    "ExtractionResult",
    "ExtractionStats",
]
