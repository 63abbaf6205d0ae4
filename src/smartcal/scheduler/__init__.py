# Reminder scheduling.
# Created: 2026-10-04

from smartcal.scheduler.models import Reminder, ReminderLogEntry, ReminderSnapshot
from smartcal.scheduler.notifications import LoggingNotificationSink, NotificationSinkProtocol
from smartcal.scheduler.scheduler import ReminderScheduler
from smartcal.scheduler.store import FileKeyValueStore, KeyValueStoreProtocol, MemoryKeyValueStore

__all__ = [
    "FileKeyValueStore",
    "KeyValueStoreProtocol",
    "LoggingNotificationSink",
    "MemoryKeyValueStore",
    "NotificationSinkProtocol",
    "Reminder",
    "ReminderLogEntry",
    "ReminderScheduler",
    "ReminderSnapshot",
]
