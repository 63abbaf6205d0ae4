# Tests for ReminderScheduler: scheduling, firing, persistence, queries.
# Created: 2026-10-09

import asyncio
import json
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from smartcal.config import Settings
from smartcal.events.models import Event, EventPriority, EventType
from smartcal.scheduler.models import ReminderSnapshot
from smartcal.scheduler.scheduler import LOGS_KEY, PENDING_KEY, ReminderScheduler
from smartcal.scheduler.store import MemoryKeyValueStore


def _event(start="2026-02-14T10:00:00", **kwargs) -> Event:
    kwargs.setdefault("title", "项目会议")
    kwargs.setdefault("type", EventType.MEETING)
    return Event(start_date=start, **kwargs)


@pytest.fixture
def scheduler(settings, store, clock):
    return ReminderScheduler(store=store, settings=settings, clock=clock)


@pytest.fixture
def sink():
    return MagicMock()


@pytest.fixture
def running(scheduler, sink):
    scheduler.initialize(sink)
    yield scheduler
    scheduler.stop()


# ============================================================================
# add_reminder
# ============================================================================


class TestAddReminder:
    def test_future_event(self, scheduler):
        event = _event()
        reminder = scheduler.add_reminder(event, 15)

        assert reminder is not None
        assert reminder.event_id == event.id
        assert reminder.event_time == datetime(2026, 2, 14, 10, 0)
        assert reminder.reminder_time == datetime(2026, 2, 14, 9, 45)
        assert reminder.type == "meeting"
        assert reminder.id.startswith(f"{event.id}_reminder_")
        assert scheduler.scheduled_reminders == {reminder.id: reminder}

    def test_uses_default_minutes(self, scheduler):
        reminder = scheduler.add_reminder(_event())
        assert reminder.minutes_before == 15

    def test_reminder_time_already_passed(self, scheduler):
        assert scheduler.add_reminder(_event("2026-02-14T09:10:00"), 15) is None
        assert scheduler.scheduled_reminders == {}

    def test_reminder_time_exactly_now_is_rejected(self, scheduler):
        assert scheduler.add_reminder(_event("2026-02-14T09:15:00"), 15) is None

    def test_zero_minutes_needs_future_event(self, scheduler):
        reminder = scheduler.add_reminder(_event("2026-02-14T09:30:00"), 0)
        assert reminder is not None
        assert reminder.reminder_time == reminder.event_time

        assert scheduler.add_reminder(_event("2026-02-14T09:00:00"), 0) is None

    def test_missing_or_bad_start(self, scheduler):
        assert scheduler.add_reminder(_event(""), 15) is None
        assert scheduler.add_reminder(_event("someday"), 15) is None

    def test_accepts_plain_dict(self, scheduler):
        reminder = scheduler.add_reminder(
            {"id": "evt-x", "title": "体检", "startDate": "2026-02-14T12:00:00"}, 30
        )
        assert reminder.event_id == "evt-x"
        assert reminder.reminder_time == datetime(2026, 2, 14, 11, 30)

    def test_ids_unique_for_same_event_and_tick(self, scheduler):
        event = _event()
        first = scheduler.add_reminder(event, 15)
        second = scheduler.add_reminder(event, 30)
        assert first.id != second.id
        assert len(scheduler.scheduled_reminders) == 2

    def test_persists_snapshot(self, scheduler, store):
        reminder = scheduler.add_reminder(_event(), 15)

        snapshot = ReminderSnapshot.from_json(store.load(PENDING_KEY))
        assert snapshot.version == 1
        assert [r.id for r in snapshot.reminders] == [reminder.id]

    def test_store_failure_keeps_reminder_in_memory(self, settings, clock):
        store = MagicMock()
        store.save.side_effect = OSError("disk full")
        scheduler = ReminderScheduler(store=store, settings=settings, clock=clock)

        reminder = scheduler.add_reminder(_event(), 15)

        assert reminder is not None
        assert reminder.id in scheduler.scheduled_reminders


# ============================================================================
# Removal / update / reschedule
# ============================================================================


class TestRemoveAndUpdate:
    def test_remove_by_event(self, scheduler):
        event = _event()
        scheduler.add_reminder(event, 15)
        scheduler.add_reminder(event, 30)
        other = scheduler.add_reminder(_event(title="别的"), 15)

        assert scheduler.remove_reminder(event.id) == 2
        assert list(scheduler.scheduled_reminders) == [other.id]
        assert scheduler.remove_reminder(event.id) == 0

    def test_remove_by_event_clears_history(self, running, sink, clock):
        event = _event()
        running.add_reminder(event, 15)
        clock.advance(minutes=45)
        running.check_reminders()
        assert running.reminder_history

        running.remove_reminder(event.id)
        assert running.reminder_history == {}

    def test_remove_by_id(self, scheduler):
        reminder = scheduler.add_reminder(_event(), 15)

        assert scheduler.remove_reminder_by_id(reminder.id) is reminder
        assert scheduler.scheduled_reminders == {}
        assert scheduler.remove_reminder_by_id(reminder.id) is None

    def test_remove_by_id_from_history(self, running, clock):
        reminder = running.add_reminder(_event(), 15)
        clock.advance(minutes=45)
        running.check_reminders()

        entry = running.remove_reminder_by_id(reminder.id)
        assert entry.reminder_id == reminder.id
        assert running.reminder_history == {}

    def test_update_replaces_reminders(self, scheduler):
        event = _event()
        scheduler.add_reminder(event, 15)

        event.start_date = "2026-02-14T16:00:00"
        updated = scheduler.update_reminder(event, 30)

        assert list(scheduler.scheduled_reminders.values()) == [updated]
        assert updated.reminder_time == datetime(2026, 2, 14, 15, 30)

    def test_update_to_past_leaves_nothing(self, scheduler):
        event = _event()
        scheduler.add_reminder(event, 15)

        event.start_date = "2026-02-13T10:00:00"
        assert scheduler.update_reminder(event) is None
        assert scheduler.scheduled_reminders == {}

    def test_reschedule_all(self, scheduler):
        scheduler.add_reminder(_event(title="旧的"), 15)
        events = [
            _event("2026-02-14T11:00:00", title="A", reminder_minutes=10),
            _event("2026-02-14T12:00:00", title="B", enable_reminder=False),
            _event("2026-02-13T12:00:00", title="C"),
        ]

        status = scheduler.reschedule_all(events)

        titles = [r.event_title for r in scheduler.scheduled_reminders.values()]
        assert titles == ["A"]
        reminder = next(iter(scheduler.scheduled_reminders.values()))
        assert reminder.minutes_before == 10
        assert status["scheduled_count"] == 1

    def test_reschedule_all_with_override(self, scheduler):
        scheduler.reschedule_all([_event(reminder_minutes=10)], minutes_before=30)
        reminder = next(iter(scheduler.scheduled_reminders.values()))
        assert reminder.minutes_before == 30

    def test_initialize_from_events(self, scheduler):
        added = scheduler.initialize_from_events(
            [
                _event("2026-02-14T11:00:00"),
                {"title": "无日期"},
                _event("2026-02-14T12:00:00", enable_reminder=False),
            ]
        )
        assert added == 1


# ============================================================================
# Firing
# ============================================================================


class TestCheckReminders:
    def test_fires_due_reminder_once(self, running, sink, clock):
        reminder = running.add_reminder(_event(priority=EventPriority.HIGH), 15)

        clock.advance(minutes=44)
        assert running.check_reminders() == []
        sink.send.assert_not_called()

        clock.advance(minutes=1)
        fired = running.check_reminders()

        assert fired == [reminder]
        sink.send.assert_called_once()
        title, message, options = sink.send.call_args[0]
        assert title == "👥 项目会议"
        assert message == "事件将在15分钟后开始 (10:00)"
        assert options["sound_type"] == "urgent"
        assert options["tag"] == reminder.id

        assert running.scheduled_reminders == {}
        assert running.reminder_history[reminder.id].status == "notified"

        clock.advance(minutes=1)
        assert running.check_reminders() == []
        assert sink.send.call_count == 1

    def test_late_check_still_fires(self, running, sink, clock):
        running.add_reminder(_event(), 15)
        clock.advance(hours=3)
        assert len(running.check_reminders()) == 1

    def test_not_running_does_nothing(self, scheduler, clock):
        scheduler.add_reminder(_event(), 15)
        clock.advance(hours=1)
        assert scheduler.check_reminders() == []
        assert len(scheduler.scheduled_reminders) == 1

    def test_due_reminders_wait_for_sink(self, scheduler, clock):
        scheduler.initialize(None)
        scheduler.add_reminder(_event(), 15)
        clock.advance(minutes=50)

        assert scheduler.check_reminders() == []
        assert len(scheduler.scheduled_reminders) == 1

        sink = MagicMock()
        scheduler.sink = sink
        assert len(scheduler.check_reminders()) == 1
        sink.send.assert_called_once()
        scheduler.stop()

    def test_failing_sink_is_recorded_and_not_retried(self, running, sink, clock):
        sink.send.side_effect = RuntimeError("no display")
        reminder = running.add_reminder(_event(), 15)
        clock.advance(minutes=45)

        fired = running.check_reminders()

        assert fired == [reminder]
        assert running.reminder_history[reminder.id].status == "failed"
        assert running.scheduled_reminders == {}
        running.check_reminders()
        assert sink.send.call_count == 1

    def test_message_at_start_for_zero_minutes(self, running, sink, clock):
        running.add_reminder(_event("2026-02-14T09:30:00"), 0)
        clock.advance(minutes=30)
        running.check_reminders()
        assert sink.send.call_args[0][1] == "事件现在开始! (09:30)"

    def test_durable_log(self, running, store, clock):
        first = running.add_reminder(_event("2026-02-14T10:00:00", title="A"), 15)
        second = running.add_reminder(_event("2026-02-14T11:00:00", title="B"), 15)

        clock.advance(minutes=45)
        running.check_reminders()
        clock.advance(hours=1)
        running.check_reminders()

        logs = running.get_reminder_logs()
        assert [entry["reminder_id"] for entry in logs] == [second.id, first.id]
        assert json.loads(store.load(LOGS_KEY)) == logs

    def test_log_is_capped(self, store, clock):
        settings = Settings(_env_file=None, reminder_log_limit=2, reminder_history_limit=2)
        scheduler = ReminderScheduler(store=store, settings=settings, clock=clock)
        scheduler.initialize(MagicMock())
        ids = [
            scheduler.add_reminder(_event(f"2026-02-14T10:0{i}:00", title=str(i)), 15).id
            for i in range(3)
        ]

        clock.advance(hours=1)
        scheduler.check_reminders()

        assert len(scheduler.get_reminder_logs()) == 2
        assert len(scheduler.reminder_history) == 2
        assert ids[0] not in scheduler.reminder_history

    def test_unreadable_log_is_empty(self, scheduler, store):
        store.save(LOGS_KEY, "{broken")
        assert scheduler.get_reminder_logs() == []


# ============================================================================
# Persistence across instances
# ============================================================================


class TestPersistence:
    def test_restore_pending(self, settings, store, clock):
        first = ReminderScheduler(store=store, settings=settings, clock=clock)
        kept = first.add_reminder(_event("2026-02-14T12:00:00"), 15)
        first.add_reminder(_event("2026-02-14T09:30:00"), 15)

        clock.advance(minutes=20)
        second = ReminderScheduler(store=store, settings=settings, clock=clock)
        second.initialize(MagicMock())

        # The 09:15 reminder is past due on reload and is dropped.
        assert list(second.scheduled_reminders) == [kept.id]
        second.stop()

    def test_stop_does_not_wipe_persisted_state(self, settings, store, clock):
        first = ReminderScheduler(store=store, settings=settings, clock=clock)
        first.initialize(MagicMock())
        reminder = first.add_reminder(_event(), 15)
        first.stop()
        assert first.scheduled_reminders == {}

        second = ReminderScheduler(store=store, settings=settings, clock=clock)
        second.initialize(MagicMock())
        assert reminder.id in second.scheduled_reminders
        second.stop()

    def test_legacy_blob(self, settings, clock):
        legacy = [
            {
                "id": "evt-1_reminder_1",
                "eventId": "evt-1",
                "eventTitle": "开会",
                "eventTime": "2026-02-14T10:00:00",
                "reminderTime": "2026-02-14T09:45:00",
                "minutesBefore": 15,
                "type": "meeting",
                "priority": "medium",
                "notified": False,
            }
        ]
        store = MemoryKeyValueStore({PENDING_KEY: json.dumps(legacy)})
        scheduler = ReminderScheduler(store=store, settings=settings, clock=clock)
        scheduler.initialize(None)

        assert list(scheduler.scheduled_reminders) == ["evt-1_reminder_1"]
        scheduler.stop()

    def test_corrupt_blob_starts_empty(self, settings, clock):
        store = MemoryKeyValueStore({PENDING_KEY: "not json at all"})
        scheduler = ReminderScheduler(store=store, settings=settings, clock=clock)
        scheduler.initialize(None)

        assert scheduler.scheduled_reminders == {}
        assert scheduler.is_running is True
        scheduler.stop()

    def test_store_load_error_is_tolerated(self, settings, clock):
        store = MagicMock()
        store.load.side_effect = OSError("permission denied")
        scheduler = ReminderScheduler(store=store, settings=settings, clock=clock)
        scheduler.initialize(None)

        assert scheduler.scheduled_reminders == {}
        scheduler.stop()


# ============================================================================
# Queries and cleanup
# ============================================================================


class TestQueries:
    def test_upcoming_sorted_and_limited(self, scheduler):
        scheduler.add_reminder(_event("2026-02-14T12:00:00", title="late"), 15)
        scheduler.add_reminder(_event("2026-02-14T09:40:00", title="soon"), 15)
        scheduler.add_reminder(_event("2026-02-14T11:00:00", title="mid"), 15)

        upcoming = scheduler.get_upcoming_reminders(limit=2)

        assert [r["event_title"] for r in upcoming] == ["soon", "mid"]
        assert upcoming[0]["status"] == "pending"
        assert upcoming[0]["time_until"] == "40分钟"
        assert upcoming[0]["is_expiring_soon"] is True
        assert upcoming[1]["is_expiring_soon"] is False

    def test_is_expiring_soon_window(self, scheduler):
        reminder = scheduler.add_reminder(_event("2026-02-14T09:45:00"), 15)
        assert scheduler.is_expiring_soon(reminder) is True
        assert scheduler.is_expiring_soon(reminder, minutes=10) is False
        assert scheduler.is_expiring_soon(reminder, now=datetime(2026, 2, 14, 9, 31)) is False

    def test_all_reminders_include_history(self, running, clock):
        running.add_reminder(_event("2026-02-14T10:00:00", title="fired"), 15)
        running.add_reminder(_event("2026-02-14T12:00:00", title="pending"), 15)
        clock.advance(minutes=45)
        running.check_reminders()

        everything = running.get_all_reminders()

        assert [r["event_title"] for r in everything] == ["pending", "fired"]
        assert everything[1]["status"] == "notified"

    def test_status(self, running, clock):
        running.add_reminder(_event(), 15)
        status = running.get_status()

        assert status["is_running"] is True
        assert status["scheduled_count"] == 1
        assert status["history_count"] == 0
        assert status["checking"] is False
        assert status["check_interval_seconds"] == 60.0
        assert status["last_check_at"] == "2026-02-14T09:00:00"
        assert len(status["upcoming_reminders"]) == 1

    def test_cleanup_expired(self, scheduler, clock):
        scheduler.add_reminder(_event("2026-02-14T10:00:00"), 15)
        scheduler.add_reminder(_event("2026-02-14T13:00:00"), 15)

        clock.advance(hours=2, minutes=1)
        assert scheduler.cleanup_expired_reminders() == 1
        assert len(scheduler.scheduled_reminders) == 1

    def test_cleanup_old_history(self, running, clock):
        running.add_reminder(_event(), 15)
        clock.advance(minutes=45)
        running.check_reminders()

        clock.advance(days=8)
        assert running.cleanup_expired_reminders() == 0
        assert running.reminder_history == {}


# ============================================================================
# Lifecycle
# ============================================================================


class TestLifecycle:
    def test_stop_before_initialize(self, scheduler):
        scheduler.stop()
        assert scheduler.is_running is False

    def test_stop_clears_pending(self, running):
        running.add_reminder(_event(), 15)
        running.stop()
        assert running.scheduled_reminders == {}
        assert running.check_reminders() == []

    def test_initialize_without_loop_has_no_task(self, running):
        assert running._check_task is None

    async def test_initialize_in_loop_starts_task(self, scheduler, sink):
        scheduler.initialize(sink)
        task = scheduler._check_task

        assert task is not None
        assert scheduler.get_status()["checking"] is True

        scheduler.stop()
        await asyncio.sleep(0)
        assert task.cancelled() or task.done()
        assert scheduler._check_task is None

    async def test_periodic_check_fires(self, store, clock, sink):
        settings = Settings(_env_file=None, reminder_check_interval=0.01)
        scheduler = ReminderScheduler(store=store, settings=settings, clock=clock)
        scheduler.initialize(sink)
        scheduler.add_reminder(_event("2026-02-14T09:20:00"), 15)

        clock.advance(minutes=6)
        for _ in range(50):
            await asyncio.sleep(0.01)
            if sink.send.called:
                break

        scheduler.stop()
        sink.send.assert_called_once()

    async def test_reinitialize_replaces_task(self, scheduler, sink):
        scheduler.initialize(sink)
        first = scheduler._check_task
        scheduler.initialize(sink)

        assert scheduler._check_task is not first
        scheduler.stop()
