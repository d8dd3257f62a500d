"""
Core logic for overlaying date exceptions onto recurring slots.

Pure domain logic without any external dependencies (no database, no I/O).
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, Iterator, List, Tuple

import pendulum

from .exceptions import ValidationError
from .models import DayProjection, ProjectedSlot, Slot, SlotException, day_of_week


class ScheduleCalculator:
    """
    Builds the effective calendar for a date range.

    Algorithm:
    1. Group active slots by day of week
    2. Index exceptions by (slot id, date)
    3. Step through the range one calendar day at a time
    4. For every slot on that weekday, emit the slot's own times or the
       exception's override
    5. Cancelled occurrences are kept and flagged, not dropped
    """

    def project(
        self,
        start_date: date,
        end_date: date,
        slots: Iterable[Slot],
        exceptions: Iterable[SlotException],
    ) -> List[DayProjection]:
        """
        Project slots and exceptions onto every date in [start_date, end_date].

        Returns:
            One DayProjection per date, in calendar order
        """
        return list(self.iter_days(start_date, end_date, slots, exceptions))

    def iter_days(
        self,
        start_date: date,
        end_date: date,
        slots: Iterable[Slot],
        exceptions: Iterable[SlotException],
    ) -> Iterator[DayProjection]:
        """Lazy form of project(); each call starts from scratch."""
        if end_date < start_date:
            raise ValidationError(
                f"End date {end_date.isoformat()} must not be before start date {start_date.isoformat()}"
            )

        slots_by_day = self._group_by_day(slots)
        exception_index = self._index_exceptions(exceptions)

        current = pendulum.date(start_date.year, start_date.month, start_date.day)

        while current <= end_date:
            on_date = date(current.year, current.month, current.day)
            weekday = day_of_week(on_date)

            entries = [
                self._apply_exception(slot, exception_index.get((slot.id, on_date)))
                for slot in slots_by_day.get(weekday, [])
            ]

            yield DayProjection(date=on_date, day_of_week=weekday, slots=entries)

            current = current.add(days=1)

    @staticmethod
    def _group_by_day(slots: Iterable[Slot]) -> Dict[int, List[Slot]]:
        grouped: Dict[int, List[Slot]] = defaultdict(list)

        for slot in slots:
            if slot.is_active:
                grouped[slot.day_of_week].append(slot)

        for day_slots in grouped.values():
            day_slots.sort(key=lambda s: s.start_time)

        return grouped

    @staticmethod
    def _index_exceptions(
        exceptions: Iterable[SlotException],
    ) -> Dict[Tuple[str, date], SlotException]:
        return {
            (exception.slot_id, exception.exception_date): exception
            for exception in exceptions
        }

    @staticmethod
    def _apply_exception(slot: Slot, exception: SlotException | None) -> ProjectedSlot:
        """
        Merge one exception into a slot occurrence.

        Times the exception does not set fall back to the slot's own.
        """
        if exception is None:
            return ProjectedSlot(
                slot=slot,
                start_time=slot.start_time,
                end_time=slot.end_time,
                is_exception=False,
            )

        return ProjectedSlot(
            slot=slot,
            start_time=exception.start_time if exception.start_time is not None else slot.start_time,
            end_time=exception.end_time if exception.end_time is not None else slot.end_time,
            is_exception=True,
            is_cancelled=exception.is_cancelled,
            exception_id=exception.id,
            reason=exception.reason,
        )
