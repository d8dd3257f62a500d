"""
Business rules shared by the slot and exception stores.

Pure functions over domain objects; the stores fetch the candidates and
call in here before writing.
"""

from datetime import date
from typing import Iterable, List, Optional

from .exceptions import CapacityExceededError, ConflictError, ValidationError
from .models import Slot, TimeRange

MAX_ACTIVE_SLOTS_PER_DAY = 2

DAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}


def validate_day_of_week(day: int) -> int:
    """Ensure a day of week is in 0..6."""
    if isinstance(day, bool) or not isinstance(day, int) or day not in DAY_NAMES:
        raise ValidationError(
            f"Day of week must be between 0 (Sunday) and 6 (Saturday), got {day!r}"
        )
    return day


def validate_effective_window(effective_from: date, effective_until: Optional[date]) -> None:
    """An explicit effective_until must fall strictly after effective_from."""
    if effective_until is not None and effective_until <= effective_from:
        raise ValidationError(
            f"effective_until {effective_until.isoformat()} must be after "
            f"effective_from {effective_from.isoformat()}"
        )


def ensure_capacity(active_count: int, day: int) -> None:
    """
    Raise if a day already holds the maximum number of active slots.

    Args:
        active_count: Active slots currently on the day, not counting the one being placed
        day: Day of week, used for the message
    """
    if active_count >= MAX_ACTIVE_SLOTS_PER_DAY:
        raise CapacityExceededError(
            f"Maximum {MAX_ACTIVE_SLOTS_PER_DAY} slots allowed per day "
            f"({DAY_NAMES.get(day, day)} already has {active_count})"
        )


def find_conflicts(
    candidate: TimeRange,
    slots: Iterable[Slot],
    exclude_id: Optional[str] = None,
) -> List[Slot]:
    """
    Return the active slots whose recurring range overlaps the candidate.

    Callers pass slots of a single day of week; inactive slots and the
    excluded id never conflict.
    """
    return [
        slot for slot in slots
        if slot.is_active
        and slot.id != exclude_id
        and slot.time_range.overlaps(candidate)
    ]


def ensure_no_conflict(
    candidate: TimeRange,
    slots: Iterable[Slot],
    exclude_id: Optional[str] = None,
) -> None:
    """Raise ConflictError when find_conflicts returns anything."""
    conflicts = find_conflicts(candidate, slots, exclude_id=exclude_id)
    if conflicts:
        clashing = ", ".join(f"'{slot.title}' ({slot.time_range})" for slot in conflicts)
        raise ConflictError(f"Time {candidate} conflicts with existing slot(s): {clashing}")
