"""
Tests for ScheduleProjector, both over the stores and over stub sources.
"""

from datetime import date, time

import pytest

from slotcalendar.domain.exceptions import ValidationError
from slotcalendar.domain.models import Slot, SlotException
from slotcalendar.services.schedule_projector import ScheduleProjector


class StubSlotSource:
    def __init__(self, slots):
        self.slots = slots
        self.calls = []

    def find_effective_in_range(self, start_date, end_date):
        self.calls.append((start_date, end_date))
        return self.slots


class StubExceptionSource:
    def __init__(self, exceptions):
        self.exceptions = exceptions

    def find_by_date_range(self, start_date, end_date):
        return self.exceptions


class TestScheduleProjector:
    """Tests for ScheduleProjector."""

    def test_cancellation_over_three_days(self, make_slot, exception_store, projector):
        slot = make_slot()
        exception_store.create(
            {"slot_id": slot.id, "exception_date": "2024-03-11", "is_cancelled": True, "reason": "Holiday"}
        )

        days = projector.project_range("2024-03-10", "2024-03-12")

        assert [d.date for d in days] == [date(2024, 3, 10), date(2024, 3, 11), date(2024, 3, 12)]
        assert days[0].slots == []
        assert days[2].slots == []
        entry = days[1].slots[0]
        assert entry.slot.id == slot.id
        assert entry.is_cancelled
        assert entry.reason == "Holiday"

    def test_override_replaces_times_for_one_date(self, make_slot, exception_store, projector):
        slot = make_slot()
        exception_store.create(
            {"slot_id": slot.id, "exception_date": "2024-03-11", "start_time": "13:00", "end_time": "14:00"}
        )

        days = projector.project_range("2024-03-11", "2024-03-18")

        moved, regular = days[0].slots[0], days[7].slots[0]
        assert (moved.start_time, moved.end_time) == (time(13, 0), time(14, 0))
        assert moved.is_exception and not moved.is_cancelled
        assert (regular.start_time, regular.end_time) == (time(9, 0), time(10, 0))
        assert not regular.is_exception

    def test_entries_sorted_by_start_time(self, make_slot, projector):
        make_slot(title="Afternoon", start_time="14:00", end_time="15:00")
        make_slot(title="Morning", start_time="08:00", end_time="09:00")

        (day,) = projector.project_range("2024-03-11", "2024-03-11")

        assert [entry.slot.title for entry in day.slots] == ["Morning", "Afternoon"]

    def test_soft_deleted_slot_not_projected(self, make_slot, slot_store, projector):
        slot = make_slot()
        slot_store.soft_delete(slot.id)

        (day,) = projector.project_range("2024-03-11", "2024-03-11")

        assert day.slots == []

    def test_slots_effective_within_the_range_appear_on_every_weekday(self, make_slot, projector):
        starting = make_slot(title="Starting", effective_from="2024-03-11")
        make_slot(title="Ended", day_of_week=2, effective_from="2024-01-01", effective_until="2024-02-29")

        days = projector.project_range("2024-03-04", "2024-03-12")
        occurrences = [(d.date, entry.slot.id) for d in days for entry in d.slots]

        assert occurrences == [(date(2024, 3, 4), starting.id), (date(2024, 3, 11), starting.id)]

    def test_project_week_runs_sunday_to_saturday(self, make_slot, projector):
        make_slot()

        days = projector.project_week(date(2024, 3, 13))

        assert len(days) == 7
        assert days[0].date == date(2024, 3, 10)
        assert days[-1].date == date(2024, 3, 16)
        assert [d.day_of_week for d in days] == list(range(7))
        assert len(days[1].slots) == 1

    def test_project_week_from_a_sunday(self, projector):
        days = projector.project_week("2024-03-10")

        assert days[0].date == date(2024, 3, 10)

    def test_reversed_range(self, projector):
        with pytest.raises(ValidationError):
            projector.project_range("2024-03-12", "2024-03-10")

    def test_iter_range_validates_when_iterated(self, projector):
        days = projector.iter_range("2024-03-12", "2024-03-10")

        with pytest.raises(ValidationError):
            next(days)

    def test_iter_range_yields_each_date(self, projector):
        dates = [day.date for day in projector.iter_range("2024-02-28", "2024-03-01")]

        assert dates == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]

    def test_works_with_any_sources(self):
        slot = Slot(
            id="s1",
            title="Standup",
            day_of_week=2,
            start_time=time(10, 0),
            end_time=time(10, 15),
            effective_from=date(2024, 1, 1),
        )
        override = SlotException(
            id="e1",
            slot_id="s1",
            exception_date=date(2024, 3, 12),
            start_time=time(10, 30),
            end_time=time(10, 45),
            reason="Late start",
        )
        slot_source = StubSlotSource([slot])
        projector = ScheduleProjector(slot_source, StubExceptionSource([override]))

        days = projector.project_range(date(2024, 3, 12), date(2024, 3, 12))

        assert slot_source.calls == [(date(2024, 3, 12), date(2024, 3, 12))]
        entry = days[0].slots[0]
        assert entry.format_display() == "10:30 – 10:45 Standup (changed): Late start"
