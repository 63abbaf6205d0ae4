# Reminder scheduler: turns events into one-shot reminders and fires them.
# Created: 2026-10-05
# Updated: 2026-10-11 - Pending set is now persisted as a versioned snapshot
#   (legacy bare-array blobs still load). Reminders due while no sink is
#   registered stay pending instead of being silently dropped.
#
# Lifecycle of a reminder:
#   add_reminder()      -> pending (persisted)
#   check_reminders()   -> fired once: removed from pending, sink called,
#                          appended to history and to the durable log
#   remove_/update_/reschedule_all()/cleanup_expired_reminders()
#                       -> removed early
#
# The pending and history maps are guarded by an RLock: API handlers may run
# in a worker thread while the periodic check task runs on the event loop.

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from smartcal.config import Settings, get_settings
from smartcal.events.models import Event
from smartcal.extraction.dates import parse_local_datetime
from smartcal.scheduler.models import Reminder, ReminderLogEntry, ReminderSnapshot
from smartcal.scheduler.notifications import (
    NotificationSinkProtocol,
    build_notification_options,
    build_reminder_message,
    build_reminder_title,
    format_time_until,
)
from smartcal.scheduler.store import KeyValueStoreProtocol, MemoryKeyValueStore

logger = logging.getLogger(__name__)

PENDING_KEY = "scheduledReminders"
LOGS_KEY = "reminderLogs"
RECENT_HISTORY_LIMIT = 20


def _coerce_event(event: Event | dict[str, Any]) -> Event:
    if isinstance(event, Event):
        return event
    return Event.from_dict(event)


class ReminderScheduler:
    """Schedules, persists and fires event reminders.

    One instance per host application::

        scheduler = ReminderScheduler(store=FileKeyValueStore(), settings=settings)
        scheduler.initialize(sink)
        scheduler.add_reminder(event, minutes_before=15)
        ...
        scheduler.stop()

    ``initialize()`` starts a periodic check task when called with a running
    asyncio loop. Without one, the host drives checks by calling
    ``check_reminders()`` itself.
    """

    def __init__(
        self,
        store: KeyValueStoreProtocol | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings or get_settings()
        self.store: KeyValueStoreProtocol = store if store is not None else MemoryKeyValueStore()
        self._clock = clock or datetime.now

        self.scheduled_reminders: dict[str, Reminder] = {}
        self.reminder_history: dict[str, ReminderLogEntry] = {}
        self.is_running = False
        self.sink: NotificationSinkProtocol | None = None

        self._lock = threading.RLock()
        self._sequence = itertools.count(1)
        self._check_task: asyncio.Task | None = None
        self._last_check_at: datetime | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self, sink: NotificationSinkProtocol | None) -> None:
        """Register the sink, restore persisted reminders and start checking."""
        self.sink = sink
        self.is_running = True
        self._load_persisted()
        self._start_checking()
        logger.info("⏰ Reminder scheduler initialized")

    def initialize_from_events(self, events: Iterable[Event | dict[str, Any]]) -> int:
        """Add reminders for every event that has a start date and reminders enabled.

        Each event's own ``reminder_minutes`` is used. Returns the number added.
        """
        added = 0
        for raw in events:
            event = _coerce_event(raw)
            if event.start_date and event.enable_reminder:
                if self.add_reminder(event, event.reminder_minutes) is not None:
                    added += 1
        return added

    def stop(self) -> None:
        """Stop periodic checks and clear pending state. Safe from any state."""
        self.is_running = False
        if self._check_task is not None:
            if not self._check_task.done():
                self._check_task.cancel()
            self._check_task = None
        with self._lock:
            self.scheduled_reminders.clear()
        logger.info("Reminder scheduler stopped")

    def _start_checking(self) -> None:
        if self._check_task is not None and not self._check_task.done():
            self._check_task.cancel()
        self._check_task = None

        self.check_reminders()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; periodic reminder checks left to the host")
            return

        self._check_task = loop.create_task(self.run_checks())

    async def run_checks(self) -> None:
        """Periodic loop: sleep one interval, check, repeat until stopped."""
        interval = self.settings.reminder_check_interval
        while self.is_running:
            await asyncio.sleep(interval)
            if not self.is_running:
                break
            try:
                self.check_reminders()
            except Exception:
                logger.exception("Reminder check failed")

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_reminder(
        self, event: Event | dict[str, Any], minutes_before: int | None = None
    ) -> Reminder | None:
        """Schedule a reminder *minutes_before* the event starts.

        Returns the new reminder, or None when the event has no usable start
        date or the reminder moment has already passed. With
        ``minutes_before == 0`` the event itself must still be in the future.
        """
        event = _coerce_event(event)
        if minutes_before is None:
            minutes_before = self.settings.default_reminder_minutes

        event_time = parse_local_datetime(event.start_date)
        if event_time is None:
            logger.debug("Skipping reminder for event %s: no usable start date", event.id)
            return None

        reminder_time = event_time - timedelta(minutes=minutes_before)
        now = self._clock()

        if minutes_before == 0:
            if event_time <= now:
                return None
        elif reminder_time <= now:
            return None

        tick = int(now.timestamp() * 1000)
        reminder = Reminder(
            id=f"{event.id}_reminder_{tick}_{next(self._sequence)}",
            event_id=event.id,
            event_title=event.title,
            event_time=event_time,
            reminder_time=reminder_time,
            minutes_before=minutes_before,
            type=event.type.value,
            priority=event.priority.value,
            enable_notification=event.enable_notification,
            enable_sound=event.enable_sound,
        )

        with self._lock:
            self.scheduled_reminders[reminder.id] = reminder
            self._persist()

        logger.info(f"➕ Added reminder: {event.title} ({minutes_before} min before)")
        return reminder

    def remove_reminder(self, event_id: str) -> int:
        """Remove every pending and historical reminder of *event_id*.

        Returns the number of pending reminders removed.
        """
        with self._lock:
            pending_ids = [
                rid for rid, r in self.scheduled_reminders.items() if r.event_id == event_id
            ]
            for rid in pending_ids:
                del self.scheduled_reminders[rid]

            history_ids = [
                rid for rid, entry in self.reminder_history.items() if entry.event_id == event_id
            ]
            for rid in history_ids:
                del self.reminder_history[rid]

            if pending_ids:
                self._persist()

        if pending_ids:
            logger.info(f"➖ Removed {len(pending_ids)} reminder(s) for event {event_id}")
        return len(pending_ids)

    def remove_reminder_by_id(self, reminder_id: str) -> Reminder | ReminderLogEntry | None:
        """Remove one pending or historical reminder. Returns it, or None."""
        with self._lock:
            reminder = self.scheduled_reminders.pop(reminder_id, None)
            if reminder is not None:
                self._persist()
                return reminder
            return self.reminder_history.pop(reminder_id, None)

    def update_reminder(
        self, event: Event | dict[str, Any], minutes_before: int | None = None
    ) -> Reminder | None:
        """Replace the event's reminders with a freshly computed one."""
        event = _coerce_event(event)
        with self._lock:
            self.remove_reminder(event.id)
            return self.add_reminder(event, minutes_before)

    def reschedule_all(
        self, events: Iterable[Event | dict[str, Any]], minutes_before: int | None = None
    ) -> dict[str, Any]:
        """Drop all pending reminders and rebuild them from *events*.

        Events with reminders disabled are skipped. When *minutes_before* is
        None each event's own ``reminder_minutes`` applies.
        """
        with self._lock:
            self.scheduled_reminders.clear()
            for raw in events:
                event = _coerce_event(raw)
                if not event.enable_reminder:
                    continue
                minutes = minutes_before if minutes_before is not None else event.reminder_minutes
                self.add_reminder(event, minutes)
            self._persist()

        return self.get_status()

    def cleanup_expired_reminders(self) -> int:
        """Drop stale pending reminders and history older than the retention window.

        A pending reminder is stale once its event started more than
        ``stale_event_grace_minutes`` ago (e.g. the app was closed when it
        was due). Returns the number of pending reminders removed.
        """
        now = self._clock()
        event_cutoff = now - timedelta(minutes=self.settings.stale_event_grace_minutes)
        history_cutoff = now - timedelta(days=self.settings.history_retention_days)

        with self._lock:
            stale_ids = [
                rid for rid, r in self.scheduled_reminders.items() if r.event_time < event_cutoff
            ]
            for rid in stale_ids:
                del self.scheduled_reminders[rid]

            old_history = []
            for rid, entry in self.reminder_history.items():
                try:
                    if entry.notified_datetime < history_cutoff:
                        old_history.append(rid)
                except ValueError:
                    old_history.append(rid)
            for rid in old_history:
                del self.reminder_history[rid]

            if stale_ids:
                self._persist()

        if stale_ids or old_history:
            logger.info(
                f"Cleaned up {len(stale_ids)} expired reminder(s), "
                f"{len(old_history)} old history entries"
            )
        return len(stale_ids)

    # =========================================================================
    # Firing
    # =========================================================================

    def check_reminders(self) -> list[Reminder]:
        """Fire every pending reminder whose time has come. Returns those fired.

        Each reminder leaves the pending set before its notification is sent,
        so it can never fire twice. Without a registered sink nothing is
        fired; due reminders wait for the next check.
        """
        if not self.is_running:
            return []

        now = self._clock()
        self._last_check_at = now

        if self.sink is None:
            logger.debug("No notification sink registered; due reminders stay pending")
            return []

        with self._lock:
            due = [
                r
                for r in self.scheduled_reminders.values()
                if not r.notified and now >= r.reminder_time
            ]
            for reminder in due:
                reminder.notified = True
                del self.scheduled_reminders[reminder.id]

        if not due:
            return []

        entries = []
        for reminder in due:
            status = self._send_notification(reminder, now)
            entries.append(ReminderLogEntry.from_reminder(reminder, now, status))

        with self._lock:
            self._record_history(entries)
            self._persist()
        self._append_logs(entries)

        return due

    def _send_notification(self, reminder: Reminder, now: datetime) -> str:
        title = build_reminder_title(reminder)
        message = build_reminder_message(reminder, now)
        try:
            self.sink.send(title, message, build_notification_options(reminder))
        except Exception:
            logger.error(f"Notification sink failed for reminder {reminder.id}", exc_info=True)
            return "failed"
        logger.info(f"🔔 Reminder fired: {reminder.event_title}")
        return "notified"

    def _record_history(self, entries: list[ReminderLogEntry]) -> None:
        for entry in entries:
            self.reminder_history[entry.reminder_id] = entry
        # Insertion order is firing order; evict the oldest first.
        while len(self.reminder_history) > self.settings.reminder_history_limit:
            del self.reminder_history[next(iter(self.reminder_history))]

    # =========================================================================
    # Queries
    # =========================================================================

    def is_expiring_soon(
        self, reminder: Reminder, now: datetime | None = None, minutes: int | None = None
    ) -> bool:
        """True if the reminder fires within the next *minutes* (default 30)."""
        now = now or self._clock()
        if minutes is None:
            minutes = self.settings.expiring_soon_minutes
        remaining = reminder.reminder_time - now
        return timedelta(0) < remaining <= timedelta(minutes=minutes)

    def describe_reminder(
        self, reminder: Reminder, now: datetime | None = None
    ) -> dict[str, Any]:
        """Reminder as a dict, annotated with status and time-until fields."""
        now = now or self._clock()
        data = reminder.to_dict()
        data["status"] = "notified" if reminder.notified else "pending"
        data["time_until"] = format_time_until(reminder.event_time, now)
        data["is_expiring_soon"] = self.is_expiring_soon(reminder, now)
        return data

    def get_upcoming_reminders(self, limit: int = 10) -> list[dict[str, Any]]:
        """Pending reminders not yet due, soonest first."""
        now = self._clock()
        with self._lock:
            upcoming = [
                r
                for r in self.scheduled_reminders.values()
                if not r.notified and r.reminder_time > now
            ]
        upcoming.sort(key=lambda r: r.reminder_time)
        return [self.describe_reminder(r, now) for r in upcoming[:limit]]

    def get_all_reminders(self, limit: int = 50) -> list[dict[str, Any]]:
        """Pending reminders plus the most recent history, latest reminder time first."""
        now = self._clock()
        with self._lock:
            combined = [self.describe_reminder(r, now) for r in self.scheduled_reminders.values()]
            recent_history = sorted(
                self.reminder_history.values(), key=lambda e: e.notified_at, reverse=True
            )[:RECENT_HISTORY_LIMIT]
        combined.extend(entry.to_dict() for entry in recent_history)

        combined.sort(key=lambda item: item.get("reminder_time", ""), reverse=True)
        return combined[:limit]

    def get_status(self) -> dict[str, Any]:
        checking = self._check_task is not None and not self._check_task.done()
        with self._lock:
            scheduled_count = len(self.scheduled_reminders)
            history_count = len(self.reminder_history)
        return {
            "is_running": self.is_running,
            "scheduled_count": scheduled_count,
            "history_count": history_count,
            "checking": checking,
            "check_interval_seconds": self.settings.reminder_check_interval,
            "last_check_at": self._last_check_at.isoformat() if self._last_check_at else None,
            "upcoming_reminders": self.get_upcoming_reminders(5),
        }

    def get_reminder_logs(self) -> list[dict[str, Any]]:
        """Durable log of fired reminders, newest first."""
        try:
            raw = self.store.load(LOGS_KEY)
            logs = json.loads(raw) if raw else []
        except Exception as e:
            logger.warning(f"Failed to read reminder logs: {e}")
            return []
        return logs if isinstance(logs, list) else []

    # =========================================================================
    # Persistence
    # =========================================================================

    def _persist(self) -> None:
        """Save the not-yet-fired reminders. Failures are logged, never raised."""
        snapshot = ReminderSnapshot(
            reminders=[r for r in self.scheduled_reminders.values() if not r.notified]
        )
        try:
            self.store.save(PENDING_KEY, snapshot.to_json())
        except Exception as e:
            logger.error(f"Failed to persist reminders: {e}")

    def _load_persisted(self) -> None:
        """Restore pending reminders, skipping fired and past-due ones."""
        try:
            raw = self.store.load(PENDING_KEY)
            if not raw:
                return
            snapshot = ReminderSnapshot.from_json(raw)
        except Exception as e:
            logger.error(f"Failed to load persisted reminders: {e}")
            return

        now = self._clock()
        with self._lock:
            for reminder in snapshot.reminders:
                if reminder.reminder_time > now and not reminder.notified:
                    self.scheduled_reminders[reminder.id] = reminder
            loaded = len(self.scheduled_reminders)

        logger.info(f"📥 Loaded {loaded} persisted reminder(s)")

    def _append_logs(self, entries: list[ReminderLogEntry]) -> None:
        logs = self.get_reminder_logs()
        for entry in entries:
            logs.insert(0, entry.to_dict())
        del logs[self.settings.reminder_log_limit :]
        try:
            self.store.save(LOGS_KEY, json.dumps(logs, ensure_ascii=False))
        except Exception as e:
            logger.error(f"Failed to write reminder log: {e}")
