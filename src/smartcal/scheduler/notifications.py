# Notification sink contract and reminder payload formatting.
# Created: 2026-10-04
#
# The scheduler hands every due reminder to a sink as
#   send(title, message, options)
# where options carries: tag, require_interaction, enable_notification,
# enable_sound, sound_type, actions, data.

from __future__ import annotations

import logging
import math
from collections import deque
from datetime import UTC, datetime
from typing import Any, Protocol

from smartcal.scheduler.models import Reminder

logger = logging.getLogger(__name__)

TYPE_ICONS: dict[str, str] = {
    "meeting": "👥",
    "appointment": "📞",
    "reminder": "⏰",
    "task": "✅",
}
DEFAULT_ICON = "📅"

SOUND_TYPES: dict[str, str] = {
    "high": "urgent",
    "medium": "default",
    "low": "gentle",
}

NOTIFICATION_ACTIONS: list[dict[str, str]] = [
    {"action": "view", "title": "查看详情"},
    {"action": "dismiss", "title": "忽略"},
]


class NotificationSinkProtocol(Protocol):
    """External collaborator that actually alerts the user."""

    def send(self, title: str, message: str, options: dict[str, Any]) -> None:
        ...


def get_sound_type(priority: str) -> str:
    return SOUND_TYPES.get(priority, "default")


def format_time_until(event_time: datetime, now: datetime) -> str:
    """Human-readable time until *event_time*, e.g. ``1小时30分钟``."""
    diff_minutes = math.floor((event_time - now).total_seconds() / 60 + 0.5)

    if diff_minutes <= 0:
        return "现在"
    if diff_minutes == 1:
        return "1分钟"
    if diff_minutes < 60:
        return f"{diff_minutes}分钟"

    hours, minutes = divmod(diff_minutes, 60)
    if minutes == 0:
        return f"{hours}小时"
    return f"{hours}小时{minutes}分钟"


def build_reminder_title(reminder: Reminder) -> str:
    icon = TYPE_ICONS.get(reminder.type, DEFAULT_ICON)
    return f"{icon} {reminder.event_title}"


def build_reminder_message(reminder: Reminder, now: datetime) -> str:
    event_clock = f"{reminder.event_time.hour:02d}:{reminder.event_time.minute:02d}"
    if reminder.minutes_before == 0:
        return f"事件现在开始! ({event_clock})"
    return f"事件将在{format_time_until(reminder.event_time, now)}后开始 ({event_clock})"


def build_notification_options(reminder: Reminder) -> dict[str, Any]:
    return {
        "tag": reminder.id,
        "require_interaction": True,
        "enable_notification": reminder.enable_notification,
        "enable_sound": reminder.enable_sound,
        "sound_type": get_sound_type(reminder.priority),
        "actions": [dict(a) for a in NOTIFICATION_ACTIONS],
        "data": {
            "event_id": reminder.event_id,
            "event_title": reminder.event_title,
            "event_time": reminder.event_time.isoformat(),
            "priority": reminder.priority,
        },
    }


class LoggingNotificationSink:
    """Sink for headless hosts: logs each notification and keeps the latest few."""

    def __init__(self, max_recent: int = 50):
        self._recent: deque[dict[str, Any]] = deque(maxlen=max_recent)

    def send(self, title: str, message: str, options: dict[str, Any]) -> None:
        logger.info("🔔 %s: %s", title, message)
        self._recent.append(
            {
                "title": title,
                "message": message,
                "options": options,
                "sent_at": datetime.now(UTC).isoformat(),
            }
        )

    def recent(self) -> list[dict[str, Any]]:
        """Most recent notifications, newest first."""
        return list(reversed(self._recent))
