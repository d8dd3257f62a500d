"""
Tests for the capacity and conflict rules.
"""

from datetime import date, time

import pytest

from slotcalendar.domain.exceptions import CapacityExceededError, ConflictError, ValidationError
from slotcalendar.domain.models import Slot, TimeRange
from slotcalendar.domain.rules import (
    MAX_ACTIVE_SLOTS_PER_DAY,
    ensure_capacity,
    ensure_no_conflict,
    find_conflicts,
    validate_day_of_week,
    validate_effective_window,
)


def _slot(slot_id: str, start: str, end: str, is_active: bool = True) -> Slot:
    tr = TimeRange.parse(start, end)
    return Slot(
        id=slot_id,
        title=f"Slot {slot_id}",
        day_of_week=2,
        start_time=tr.start,
        end_time=tr.end,
        effective_from=date(2024, 1, 1),
        is_active=is_active,
    )


def test_capacity_limit_is_two():
    assert MAX_ACTIVE_SLOTS_PER_DAY == 2


def test_ensure_capacity():
    ensure_capacity(0, 1)
    ensure_capacity(1, 1)

    with pytest.raises(CapacityExceededError, match="Maximum 2 slots allowed per day"):
        ensure_capacity(2, 1)


def test_find_conflicts_ignores_inactive_and_excluded_slots():
    slots = [
        _slot("a", "09:00", "10:00"),
        _slot("b", "09:30", "11:00", is_active=False),
        _slot("c", "10:00", "12:00"),
    ]
    candidate = TimeRange.parse("09:30", "10:30")

    assert [s.id for s in find_conflicts(candidate, slots)] == ["a", "c"]
    assert [s.id for s in find_conflicts(candidate, slots, exclude_id="a")] == ["c"]


def test_boundary_touching_is_not_a_conflict():
    slots = [_slot("a", "09:00", "10:00")]

    ensure_no_conflict(TimeRange.parse("10:00", "11:00"), slots)
    ensure_no_conflict(TimeRange.parse("08:00", "09:00"), slots)


def test_ensure_no_conflict_names_the_clashing_slot():
    slots = [_slot("a", "09:00", "10:00")]

    with pytest.raises(ConflictError, match="Slot a"):
        ensure_no_conflict(TimeRange(start=time(8, 0), end=time(12, 0)), slots)


@pytest.mark.parametrize("day", [-1, 7, "1", None, True])
def test_validate_day_of_week_rejects_out_of_range(day):
    with pytest.raises(ValidationError):
        validate_day_of_week(day)


def test_validate_effective_window():
    validate_effective_window(date(2024, 1, 1), None)
    validate_effective_window(date(2024, 1, 1), date(2024, 1, 2))

    with pytest.raises(ValidationError):
        validate_effective_window(date(2024, 1, 1), date(2024, 1, 1))
    with pytest.raises(ValidationError):
        validate_effective_window(date(2024, 1, 2), date(2024, 1, 1))
