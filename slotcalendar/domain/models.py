"""
Domain models for recurring weekly slots, their date exceptions and the
projected calendar.

Day-of-week numbering throughout is 0=Sunday .. 6=Saturday.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

import pendulum

from .exceptions import TimeFormatError, ValidationError

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
DATE_FORMAT = "YYYY-MM-DD"


def parse_time(value: Any) -> time:
    """
    Parse an HH:MM (24h) string into a time of day.

    ``time`` instances (as read back from storage) are passed through with
    seconds and microseconds dropped.

    Raises:
        TimeFormatError: If the value does not match HH:MM
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise TimeFormatError(f"Invalid time '{value}', expected HH:MM (24h)")

    hour, minute = value.strip().split(":")
    return time(hour=int(hour), minute=int(minute))


def parse_optional_time(value: Any) -> Optional[time]:
    """Like parse_time, but None and empty strings mean 'no time'."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_time(value)


def format_time(value: Optional[time]) -> Optional[str]:
    """Format a time of day as HH:MM."""
    if value is None:
        return None
    return value.strftime("%H:%M")


def parse_date(value: Any) -> date:
    """
    Parse a calendar date given as YYYY-MM-DD or as a date/datetime object.

    Always returns a plain ``datetime.date``.
    """
    if isinstance(value, datetime):
        return date(value.year, value.month, value.day)

    if isinstance(value, date):
        return date(value.year, value.month, value.day)

    if not isinstance(value, str):
        raise ValidationError(f"Invalid date '{value}', expected {DATE_FORMAT}")

    try:
        parsed = pendulum.from_format(value.strip(), DATE_FORMAT)
    except ValueError as exc:
        raise ValidationError(f"Invalid date '{value}', expected {DATE_FORMAT}") from exc

    return date(parsed.year, parsed.month, parsed.day)


def day_of_week(value: date) -> int:
    """Return the day of week of a date, 0=Sunday."""
    return value.isoweekday() % 7


def is_before(a: time, b: time) -> bool:
    """Check if time of day a is strictly before b."""
    return a < b


@dataclass(frozen=True)
class TimeRange:
    """
    Immutable half-open [start, end) range of time within a day.

    Invariant: start must be before end.
    """
    start: time
    end: time

    def __post_init__(self):
        if not is_before(self.start, self.end):
            raise ValidationError(
                f"Start time {format_time(self.start)} must be before end time {format_time(self.end)}"
            )

    @classmethod
    def parse(cls, start: Any, end: Any) -> "TimeRange":
        """Build a range from two HH:MM strings (or time objects)."""
        return cls(start=parse_time(start), end=parse_time(end))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return (self.end.hour * 60 + self.end.minute) - (self.start.hour * 60 + self.start.minute)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching ranges do not overlap."""
        return overlaps(self, other)

    def __str__(self) -> str:
        return f"{format_time(self.start)} - {format_time(self.end)}"


def overlaps(range1: TimeRange, range2: TimeRange) -> bool:
    """True iff the half-open intervals intersect."""
    return not (range1.end <= range2.start or range2.end <= range1.start)


@dataclass
class Slot:
    """A recurring weekly slot definition."""
    id: str
    title: str
    day_of_week: int
    start_time: time
    end_time: time
    effective_from: date
    description: Optional[str] = None
    is_recurring: bool = True
    effective_until: Optional[date] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "day_of_week": self.day_of_week,
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
            "is_recurring": self.is_recurring,
            "effective_from": self.effective_from.isoformat(),
            "effective_until": self.effective_until.isoformat() if self.effective_until else None,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class SlotException:
    """A date-specific override or cancellation of one slot."""
    id: str
    slot_id: str
    exception_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_cancelled: bool = False
    reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def time_range(self) -> Optional[TimeRange]:
        """The overriding range, or None when cancelled or when no times are set."""
        if self.is_cancelled or self.start_time is None or self.end_time is None:
            return None
        return TimeRange(start=self.start_time, end=self.end_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slot_id": self.slot_id,
            "exception_date": self.exception_date.isoformat(),
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
            "is_cancelled": self.is_cancelled,
            "reason": self.reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class ProjectedSlot:
    """
    One slot occurrence on a concrete date.

    start_time/end_time are the effective times: the exception's when it
    sets them, otherwise the slot's own.
    """
    slot: Slot
    start_time: time
    end_time: time
    is_exception: bool = False
    is_cancelled: bool = False
    exception_id: Optional[str] = None
    reason: Optional[str] = None

    def format_display(self) -> str:
        """
        Format the occurrence for display.
        Format: HH:MM – HH:MM Title [(cancelled|changed: reason)]
        """
        line = f"{format_time(self.start_time)} – {format_time(self.end_time)} {self.slot.title}"
        if self.is_cancelled:
            line += " (cancelled)"
        elif self.is_exception:
            line += " (changed)"
        if self.is_exception and self.reason:
            line += f": {self.reason}"
        return line

    def to_dict(self) -> Dict[str, Any]:
        data = self.slot.to_dict()
        data.update(
            {
                "is_exception": self.is_exception,
                "exception_id": self.exception_id,
                "is_cancelled": self.is_cancelled,
                "effective_start_time": format_time(self.start_time),
                "effective_end_time": format_time(self.end_time),
                "exception_reason": self.reason,
            }
        )
        return data


@dataclass
class DayProjection:
    """The effective schedule of a single calendar date."""
    date: date
    day_of_week: int
    slots: List[ProjectedSlot] = field(default_factory=list)

    @property
    def active_slots(self) -> List[ProjectedSlot]:
        """Occurrences that are not cancelled."""
        return [entry for entry in self.slots if not entry.is_cancelled]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "day_of_week": self.day_of_week,
            "slots": [entry.to_dict() for entry in self.slots],
        }


@dataclass
class EffectiveSlot:
    """A slot together with the exception for one date, if any."""
    slot: Slot
    exception: Optional[SlotException] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot": self.slot.to_dict(),
            "exception": self.exception.to_dict() if self.exception else None,
        }
