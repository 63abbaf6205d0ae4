"""Reminder scheduler data models.

Created: 2026-10-04

- ``Reminder``: one pending, one-shot notification tied to an event.
- ``ReminderLogEntry``: record of a fired reminder (history + durable log).
- ``ReminderSnapshot``: the versioned blob persisted for the pending set.

Datetimes on ``Reminder`` are naive local wall-clock values; they are
serialized as ISO strings without an offset.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

SNAPSHOT_VERSION = 1


@dataclass
class Reminder:
    """A scheduled reminder for one event."""

    id: str
    event_id: str
    event_title: str
    event_time: datetime
    reminder_time: datetime
    minutes_before: int
    type: str = "reminder"
    priority: str = "medium"
    enable_notification: bool = True
    enable_sound: bool = True
    notified: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "event_id": self.event_id,
            "event_title": self.event_title,
            "event_time": self.event_time.isoformat(),
            "reminder_time": self.reminder_time.isoformat(),
            "minutes_before": self.minutes_before,
            "type": self.type,
            "priority": self.priority,
            "enable_notification": self.enable_notification,
            "enable_sound": self.enable_sound,
            "notified": self.notified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Reminder:
        """Create from dictionary. Accepts the legacy camelCase layout too."""

        def get(snake: str, camel: str, default: Any = None) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            id=data["id"],
            event_id=str(get("event_id", "eventId")),
            event_title=str(get("event_title", "eventTitle", "")),
            event_time=_parse_naive(get("event_time", "eventTime")),
            reminder_time=_parse_naive(get("reminder_time", "reminderTime")),
            minutes_before=int(get("minutes_before", "minutesBefore", 0)),
            type=get("type", "type", "reminder"),
            priority=get("priority", "priority", "medium"),
            enable_notification=bool(get("enable_notification", "enableNotification", True)),
            enable_sound=bool(get("enable_sound", "enableSound", True)),
            notified=bool(get("notified", "notified", False)),
        )


def _parse_naive(value: str | datetime) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


@dataclass
class ReminderLogEntry:
    """A fired reminder, as kept in history and in the durable log."""

    reminder_id: str
    event_id: str
    event_title: str
    event_time: str
    reminder_time: str
    type: str
    priority: str
    status: str = "notified"  # "notified" | "failed"
    notified_at: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @classmethod
    def from_reminder(
        cls, reminder: Reminder, notified_at: datetime, status: str = "notified"
    ) -> ReminderLogEntry:
        return cls(
            reminder_id=reminder.id,
            event_id=reminder.event_id,
            event_title=reminder.event_title,
            event_time=reminder.event_time.isoformat(),
            reminder_time=reminder.reminder_time.isoformat(),
            type=reminder.type,
            priority=reminder.priority,
            status=status,
            notified_at=notified_at.isoformat(),
        )

    @property
    def notified_datetime(self) -> datetime:
        return _parse_naive(self.notified_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "reminder_id": self.reminder_id,
            "event_id": self.event_id,
            "event_title": self.event_title,
            "event_time": self.event_time,
            "reminder_time": self.reminder_time,
            "type": self.type,
            "priority": self.priority,
            "status": self.status,
            "notified_at": self.notified_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReminderLogEntry:
        return cls(
            reminder_id=data.get("reminder_id", ""),
            event_id=data.get("event_id", ""),
            event_title=data.get("event_title", ""),
            event_time=data.get("event_time", ""),
            reminder_time=data.get("reminder_time", ""),
            type=data.get("type", "reminder"),
            priority=data.get("priority", "medium"),
            status=data.get("status", "notified"),
            notified_at=data.get("notified_at", ""),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class ReminderSnapshot:
    """Versioned persisted form of the pending reminder set.

    Version history:
      0 - bare JSON array of reminder objects (camelCase keys)
      1 - ``{"version": 1, "updated_at": ..., "reminders": [...]}``
    """

    reminders: list[Reminder] = field(default_factory=list)
    version: int = SNAPSHOT_VERSION
    updated_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_json(self) -> str:
        return json.dumps(
            {
                "version": self.version,
                "updated_at": self.updated_at,
                "reminders": [r.to_dict() for r in self.reminders],
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str) -> ReminderSnapshot:
        """Parse a persisted blob.

        Raises:
            ValueError: on malformed JSON, an unknown version or bad records.
        """
        data = json.loads(raw)

        if isinstance(data, list):
            version, records = 0, data
        elif isinstance(data, dict):
            version = data.get("version")
            if version != SNAPSHOT_VERSION:
                raise ValueError(f"Unsupported reminder snapshot version: {version!r}")
            records = data.get("reminders", [])
        else:
            raise ValueError("Reminder snapshot must be an object or a list")

        try:
            reminders = [Reminder.from_dict(r) for r in records]
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed reminder record: {e}") from e

        if version == 0:
            return cls(reminders=reminders, version=0)

        return cls(
            reminders=reminders,
            version=version,
            updated_at=data.get("updated_at", ""),
        )
