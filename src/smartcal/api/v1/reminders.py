# Reminders router: list, schedule, update, delete, cleanup, reschedule.
# Created: 2026-10-06

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from smartcal.api.deps import get_logging_sink, get_scheduler
from smartcal.api.v1.schemas.events import EventModel
from smartcal.api.v1.schemas.reminders import (
    AllRemindersResponse,
    CleanupResponse,
    DeleteReminderResponse,
    NotificationListResponse,
    ReminderListResponse,
    RemoveEventRemindersResponse,
    RescheduleRequest,
    ScheduleReminderRequest,
    ScheduleReminderResponse,
    SchedulerStatusResponse,
)
from smartcal.events.models import Event
from smartcal.scheduler.notifications import LoggingNotificationSink
from smartcal.scheduler.scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reminders"])


def _to_event(model: EventModel) -> Event:
    return Event.from_dict(model.model_dump(exclude_none=True))


@router.get("/reminders", response_model=ReminderListResponse)
async def list_upcoming_reminders(
    limit: int = Query(10, ge=1, le=500),
    sched: ReminderScheduler = Depends(get_scheduler),
):
    """Get pending reminders that have not fired yet, soonest first."""
    return ReminderListResponse(reminders=sched.get_upcoming_reminders(limit))


@router.get("/reminders/all", response_model=AllRemindersResponse)
async def list_all_reminders(
    limit: int = Query(50, ge=1, le=500),
    sched: ReminderScheduler = Depends(get_scheduler),
):
    """Get pending reminders together with recently fired ones."""
    return AllRemindersResponse(reminders=sched.get_all_reminders(limit))


@router.get("/reminders/status", response_model=SchedulerStatusResponse)
async def get_status(sched: ReminderScheduler = Depends(get_scheduler)):
    return sched.get_status()


@router.get("/reminders/logs", response_model=AllRemindersResponse)
async def get_reminder_logs(sched: ReminderScheduler = Depends(get_scheduler)):
    """Durable log of fired reminders, newest first."""
    return AllRemindersResponse(reminders=sched.get_reminder_logs())


@router.post("/reminders", response_model=ScheduleReminderResponse)
async def schedule_reminder(
    body: ScheduleReminderRequest,
    sched: ReminderScheduler = Depends(get_scheduler),
):
    """Schedule a reminder for an event."""
    reminder = sched.add_reminder(_to_event(body.event), body.minutes_before)
    if reminder is None:
        raise HTTPException(
            status_code=400,
            detail="No reminder scheduled: the reminder time has already passed",
        )
    return ScheduleReminderResponse(reminder=sched.describe_reminder(reminder))


@router.put("/reminders", response_model=ScheduleReminderResponse)
async def update_reminder(
    body: ScheduleReminderRequest,
    sched: ReminderScheduler = Depends(get_scheduler),
):
    """Replace an event's reminders after the event changed."""
    reminder = sched.update_reminder(_to_event(body.event), body.minutes_before)
    if reminder is None:
        raise HTTPException(
            status_code=400,
            detail="No reminder scheduled: the reminder time has already passed",
        )
    return ScheduleReminderResponse(reminder=sched.describe_reminder(reminder))


@router.post("/reminders/cleanup", response_model=CleanupResponse)
async def cleanup_reminders(sched: ReminderScheduler = Depends(get_scheduler)):
    return CleanupResponse(removed=sched.cleanup_expired_reminders())


@router.post("/reminders/reschedule", response_model=SchedulerStatusResponse)
async def reschedule_reminders(
    body: RescheduleRequest,
    sched: ReminderScheduler = Depends(get_scheduler),
):
    """Rebuild all pending reminders from an event list (after import/sync)."""
    events = [_to_event(model) for model in body.events]
    return sched.reschedule_all(events, body.minutes_before)


@router.delete("/reminders/events/{event_id}", response_model=RemoveEventRemindersResponse)
async def remove_event_reminders(
    event_id: str,
    sched: ReminderScheduler = Depends(get_scheduler),
):
    """Remove every reminder belonging to an event."""
    return RemoveEventRemindersResponse(event_id=event_id, removed=sched.remove_reminder(event_id))


@router.delete("/reminders/{reminder_id}", response_model=DeleteReminderResponse)
async def delete_reminder(
    reminder_id: str,
    sched: ReminderScheduler = Depends(get_scheduler),
):
    """Delete a reminder by ID."""
    removed = sched.remove_reminder_by_id(reminder_id)
    if removed is None:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return DeleteReminderResponse(id=reminder_id)


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(sink: LoggingNotificationSink = Depends(get_logging_sink)):
    """Notifications delivered by the built-in logging sink, newest first."""
    return NotificationListResponse(notifications=sink.recent())
