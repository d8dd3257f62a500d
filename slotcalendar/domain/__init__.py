"""
Domain layer - slots, exceptions and the rules that tie them together.
"""

from .exceptions import (
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    SlotCalendarError,
    StorageError,
    TimeFormatError,
    ValidationError,
)
from .models import (
    DayProjection,
    EffectiveSlot,
    ProjectedSlot,
    Slot,
    SlotException,
    TimeRange,
    overlaps,
    parse_date,
    parse_time,
)
from .projection import ScheduleCalculator
from .rules import MAX_ACTIVE_SLOTS_PER_DAY

__all__ = [
    "CapacityExceededError",
    "ConflictError",
    "NotFoundError",
    "SlotCalendarError",
    "StorageError",
    "TimeFormatError",
    "ValidationError",
    "DayProjection",
    "EffectiveSlot",
    "ProjectedSlot",
    "Slot",
    "SlotException",
    "TimeRange",
    "overlaps",
    "parse_date",
    "parse_time",
    "ScheduleCalculator",
    "MAX_ACTIVE_SLOTS_PER_DAY",
]
