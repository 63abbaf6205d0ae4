"""Event data models.

Created: 2026-10-02

The ``Event`` dataclass is the plain-data contract between the extractor
(which produces events from text) and the reminder scheduler (which
consumes them).

Design notes:
- ``start_date`` / ``end_date`` are local wall-clock strings
  (``YYYY-MM-DDTHH:MM:SS``, no offset). They are never routed through a
  timezone-aware object, so the calendar fields a user typed are the
  fields that get stored.
- ``created_at`` / ``updated_at`` are UTC ISO bookkeeping timestamps only.
- ``from_dict`` accepts both snake_case and the camelCase keys emitted by
  the AI collaborator and older clients.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

DEFAULT_TITLE = "未命名事件"
DEFAULT_REMINDER_MINUTES = 15

# ============================================================================
# Enums
# ============================================================================


class EventType(str, Enum):
    """Inferred event category."""

    MEETING = "meeting"
    APPOINTMENT = "appointment"
    TASK = "task"
    REMINDER = "reminder"
    PERSONAL = "personal"
    HEALTH = "health"


class EventPriority(str, Enum):
    """Event priority level."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ============================================================================
# Helper Functions
# ============================================================================


def generate_id() -> str:
    """Generate a unique event ID."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Get current UTC time as ISO 8601 string."""
    return datetime.now(UTC).isoformat()


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in *data* (snake_case or camelCase)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        return default


# ============================================================================
# Data Models
# ============================================================================


@dataclass
class Event:
    """
    A structured calendar item.

    Attributes:
        id: Unique identifier
        title: Display title, never empty
        start_date: Local start timestamp (YYYY-MM-DDTHH:MM:SS)
        end_date: Local end timestamp, >= start_date
        description: Source text (extracted events) or user text
        priority: high / medium / low
        type: Inferred category, defaults to personal
        reminder_minutes: Minutes before start to remind (0 = at start)
        reminder_methods: Delivery methods requested for the reminder
        enable_reminder: Whether the scheduler should create a reminder
        enable_notification: Whether the reminder shows a notification
        enable_sound: Whether the reminder plays a sound
        created_at: Creation time (UTC ISO)
        updated_at: Last modification time (UTC ISO)
    """

    id: str = field(default_factory=generate_id)
    title: str = DEFAULT_TITLE
    start_date: str = ""
    end_date: str = ""
    description: str = ""
    priority: EventPriority = EventPriority.LOW
    type: EventType = EventType.PERSONAL
    reminder_minutes: int = DEFAULT_REMINDER_MINUTES
    reminder_methods: list[str] = field(default_factory=lambda: ["popup"])
    enable_reminder: bool = True
    enable_notification: bool = True
    enable_sound: bool = True
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            self.title = DEFAULT_TITLE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "description": self.description,
            "priority": self.priority.value,
            "type": self.type.value,
            "reminder_minutes": self.reminder_minutes,
            "reminder_methods": list(self.reminder_methods),
            "enable_reminder": self.enable_reminder,
            "enable_notification": self.enable_notification,
            "enable_sound": self.enable_sound,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Create from dictionary (snake_case or camelCase keys)."""
        reminder_minutes = _pick(
            data, "reminder_minutes", "reminderMinutes", "reminderTime",
            default=DEFAULT_REMINDER_MINUTES,
        )
        try:
            reminder_minutes = int(reminder_minutes)
        except (TypeError, ValueError):
            reminder_minutes = DEFAULT_REMINDER_MINUTES

        return cls(
            id=str(_pick(data, "id", default=None) or generate_id()),
            title=str(_pick(data, "title", default=DEFAULT_TITLE)),
            start_date=str(_pick(data, "start_date", "startDate", default="")),
            end_date=str(_pick(data, "end_date", "endDate", default="")),
            description=str(_pick(data, "description", default="")),
            priority=_coerce_enum(
                EventPriority, _pick(data, "priority", default="low"), EventPriority.LOW
            ),
            type=_coerce_enum(EventType, _pick(data, "type", default="personal"), EventType.PERSONAL),
            reminder_minutes=reminder_minutes,
            reminder_methods=list(
                _pick(data, "reminder_methods", "reminderMethods", default=["popup"])
            ),
            enable_reminder=bool(_pick(data, "enable_reminder", "enableReminder", default=True)),
            enable_notification=bool(
                _pick(data, "enable_notification", "enableNotification", default=True)
            ),
            enable_sound=bool(_pick(data, "enable_sound", "enableSound", default=True)),
            created_at=str(_pick(data, "created_at", "createdAt", default=None) or now_iso()),
            updated_at=str(_pick(data, "updated_at", "updatedAt", default=None) or now_iso()),
        )


@dataclass
class ExtractionResult:
    """Outcome of extracting events from one piece of text."""

    success: bool
    events: list[Event] = field(default_factory=list)
    confidence: float = 0.0
    source: str = "rules"  # "rules" | "ai"
    error: str | None = None
    message: str | None = None
    raw_response: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "events": [e.to_dict() for e in self.events],
            "confidence": self.confidence,
            "source": self.source,
            "error": self.error,
            "message": self.message,
        }


@dataclass
class BatchExtractionResult:
    """Outcome of extracting events from a list of texts."""

    success: bool
    events: list[Event] = field(default_factory=list)
    total: int = 0
    unique: int = 0
    duplicates: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "events": [e.to_dict() for e in self.events],
            "total": self.total,
            "unique": self.unique,
            "duplicates": self.duplicates,
        }


@dataclass
class ExtractionStats:
    """Aggregate statistics over a batch of extractions."""

    total_conversations: int = 0
    extracted_events: int = 0
    success_rate: float = 0.0  # percent
    average_confidence: float = 0.0
    source_distribution: dict[str, int] = field(
        default_factory=lambda: {"ai": 0, "rules": 0, "mixed": 0}
    )
