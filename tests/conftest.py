# Shared fixtures for SmartCal tests.
# Created: 2026-10-07

from datetime import datetime, timedelta

import pytest

from smartcal.config import Settings
from smartcal.scheduler.store import MemoryKeyValueStore


class FakeClock:
    """Callable clock that tests can move forward by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 2, 14, 9, 0, 0))


@pytest.fixture
def store():
    return MemoryKeyValueStore()
