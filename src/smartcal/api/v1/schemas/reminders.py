# Reminder schemas.
# Created: 2026-10-06

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from smartcal.api.v1.schemas.events import EventModel


class ReminderInfo(BaseModel):
    """A pending reminder."""

    id: str
    event_id: str
    event_title: str
    event_time: str
    reminder_time: str
    minutes_before: int
    type: str
    priority: str
    enable_notification: bool = True
    enable_sound: bool = True
    notified: bool = False
    status: str = "pending"
    time_until: str = ""
    is_expiring_soon: bool = False


class ReminderListResponse(BaseModel):
    """Upcoming reminders, soonest first."""

    reminders: list[ReminderInfo]


class AllRemindersResponse(BaseModel):
    """Pending reminders and recent history entries."""

    reminders: list[dict[str, Any]]


class SchedulerStatusResponse(BaseModel):
    is_running: bool
    scheduled_count: int
    history_count: int
    checking: bool
    check_interval_seconds: float
    last_check_at: str | None = None
    upcoming_reminders: list[ReminderInfo] = Field(default_factory=list)


class ScheduleReminderRequest(BaseModel):
    """Schedule (or reschedule) a reminder for one event."""

    event: EventModel
    minutes_before: int | None = Field(default=None, ge=0)


class ScheduleReminderResponse(BaseModel):
    reminder: ReminderInfo


class RescheduleRequest(BaseModel):
    """Replace every pending reminder with ones derived from *events*."""

    events: list[EventModel]
    minutes_before: int | None = Field(default=None, ge=0)


class RemoveEventRemindersResponse(BaseModel):
    event_id: str
    removed: int


class DeleteReminderResponse(BaseModel):
    """Confirmation of deleted reminder."""

    id: str
    deleted: bool = True


class CleanupResponse(BaseModel):
    removed: int


class NotificationListResponse(BaseModel):
    notifications: list[dict[str, Any]]
