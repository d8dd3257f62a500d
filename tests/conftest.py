"""
Shared fixtures: an in-memory database, stores with a deterministic clock
and a slot factory.
"""

import itertools
from datetime import datetime, timedelta

import pytest

from slotcalendar.adapters.database import Database
from slotcalendar.services.exception_store import ExceptionStore
from slotcalendar.services.schedule_projector import ScheduleProjector
from slotcalendar.services.schedule_service import ScheduleService
from slotcalendar.services.slot_store import SlotStore


class TickingClock:
    """Returns a later timestamp on every call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 8, 0)):
        self._start = start
        self._ticks = itertools.count()

    def __call__(self) -> datetime:
        return self._start + timedelta(seconds=next(self._ticks))


@pytest.fixture
def database():
    db = Database("sqlite:///:memory:")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def slot_store(database, clock):
    return SlotStore(database, clock=clock)


@pytest.fixture
def exception_store(database, clock):
    return ExceptionStore(database, clock=clock)


@pytest.fixture
def projector(slot_store, exception_store):
    return ScheduleProjector(slot_store, exception_store)


@pytest.fixture
def service(slot_store, exception_store):
    return ScheduleService(slot_store, exception_store)


@pytest.fixture
def make_slot(slot_store):
    """Create a Monday 09:00-10:00 slot, overridable per field."""

    def _make(**overrides):
        data = {
            "title": "Office hours",
            "day_of_week": 1,
            "start_time": "09:00",
            "end_time": "10:00",
            "effective_from": "2024-01-01",
        }
        data.update(overrides)
        return slot_store.create(data)

    return _make
