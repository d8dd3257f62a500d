"""
Application service producing the effective calendar for a date range.

The projector fetches slots and exceptions through two small protocols and
delegates the overlay itself to the domain-level ``ScheduleCalculator``.
It keeps no state between calls: scrolling to another week is simply
another call with a shifted range.
"""

from __future__ import annotations

from datetime import date
from typing import Iterator, List, Optional, Protocol

import pendulum

from ..domain.exceptions import ValidationError
from ..domain.models import DayProjection, Slot, SlotException, day_of_week, parse_date
from ..domain.projection import ScheduleCalculator


class SlotSourceProtocol(Protocol):
    """Slot lookups the projector needs."""

    def find_effective_in_range(self, start_date: date, end_date: date) -> List[Slot]:
        """Return active slots effective within the range."""


class ExceptionSourceProtocol(Protocol):
    """Exception lookups the projector needs."""

    def find_by_date_range(self, start_date: date, end_date: date) -> List[SlotException]:
        """Return exceptions dated within the range."""


class ScheduleProjector:
    """
    Composes the slot and exception stores into per-date schedules.
    """

    def __init__(
        self,
        slot_source: SlotSourceProtocol,
        exception_source: ExceptionSourceProtocol,
        calculator: Optional[ScheduleCalculator] = None,
    ) -> None:
        self._slot_source = slot_source
        self._exception_source = exception_source
        self._calculator = calculator or ScheduleCalculator()

    def project_range(self, start_date: date, end_date: date) -> List[DayProjection]:
        """
        One DayProjection per date in [start_date, end_date], in order.

        Cancelled occurrences are included and flagged.
        """
        return list(self.iter_range(start_date, end_date))

    def iter_range(self, start_date: date, end_date: date) -> Iterator[DayProjection]:
        """Generator form of project_range; data is fetched when iteration starts."""
        start_date = parse_date(start_date)
        end_date = parse_date(end_date)
        if end_date < start_date:
            raise ValidationError(
                f"End date {end_date.isoformat()} must not be before start date {start_date.isoformat()}"
            )

        slots = self._slot_source.find_effective_in_range(start_date, end_date)
        exceptions = self._exception_source.find_by_date_range(start_date, end_date)

        yield from self._calculator.iter_days(start_date, end_date, slots, exceptions)

    def project_week(self, any_date: date) -> List[DayProjection]:
        """Projection of the Sunday..Saturday week containing a date."""
        any_date = parse_date(any_date)
        sunday = pendulum.date(any_date.year, any_date.month, any_date.day).subtract(
            days=day_of_week(any_date)
        )
        saturday = sunday.add(days=6)
        return self.project_range(sunday, saturday)
