"""
Store for recurring slot definitions.

Enforces the per-day capacity and the no-overlap rule on every write.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..adapters.database import Database, utcnow
from ..adapters.tables import SlotRow
from ..domain.exceptions import CapacityExceededError, ConflictError, NotFoundError, ValidationError
from ..domain.models import Slot, TimeRange, parse_date, parse_time
from ..domain.rules import (
    ensure_capacity,
    ensure_no_conflict,
    find_conflicts,
    validate_day_of_week,
    validate_effective_window,
)
from .requests import SlotCreate, SlotUpdate, coerce_request

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

SCHEDULE_FIELDS = ("day_of_week", "start_time", "end_time")


def active_slots_for_day(
    session: Session,
    day: int,
    exclude_id: Optional[str] = None,
) -> List[Slot]:
    """Active slots on a day of week, ordered by start time."""
    query = (
        select(SlotRow)
        .where(SlotRow.day_of_week == day, SlotRow.is_active.is_(True))
        .order_by(SlotRow.start_time)
    )
    if exclude_id is not None:
        query = query.where(SlotRow.id != exclude_id)

    return [row.to_domain() for row in session.scalars(query)]


def count_active_slots(session: Session, day: int, exclude_id: Optional[str] = None) -> int:
    query = (
        select(func.count())
        .select_from(SlotRow)
        .where(SlotRow.day_of_week == day, SlotRow.is_active.is_(True))
    )
    if exclude_id is not None:
        query = query.where(SlotRow.id != exclude_id)

    return session.scalar(query) or 0


class SlotStore:
    """
    Owns the recurring slots.

    Each public method is one transaction: the capacity and conflict checks
    run in the same unit of work as the write they guard.
    """

    def __init__(self, database: Database, clock: Clock = utcnow):
        self._database = database
        self._clock = clock

    def create(self, data: SlotCreate | Mapping[str, Any]) -> Slot:
        """
        Create a new recurring slot.

        Raises:
            ValidationError: If fields are malformed or start is not before end
            CapacityExceededError: If the day already holds the maximum active slots
            ConflictError: If the time range overlaps an active slot on the same day
        """
        request = coerce_request(SlotCreate, data)
        time_range = TimeRange.parse(request.start_time, request.end_time)
        validate_effective_window(request.effective_from, request.effective_until)

        with self._database.transaction() as session:
            self._check_capacity(session, request.day_of_week)
            self._check_conflicts(session, request.day_of_week, time_range)

            now = self._clock()
            row = SlotRow(
                id=request.id or str(uuid.uuid4()),
                title=request.title,
                description=request.description,
                day_of_week=request.day_of_week,
                start_time=time_range.start,
                end_time=time_range.end,
                is_recurring=request.is_recurring,
                effective_from=request.effective_from,
                effective_until=request.effective_until,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            slot = row.to_domain()

        logger.info("Created slot %s on day %s (%s)", slot.id, slot.day_of_week, slot.time_range)
        return slot

    def update(
        self,
        slot_id: str,
        fields: SlotUpdate | Mapping[str, Any],
        exclude_self_from_conflict_check: bool = True,
    ) -> Slot:
        """
        Merge fields into an existing slot.

        The overlap check runs against the resulting day whenever day or times
        are supplied, or when the slot is being reactivated.

        Raises:
            NotFoundError: If the slot does not exist
            ValidationError: If the merged values are invalid
            CapacityExceededError: If moving or reactivating would overfill a day
            ConflictError: If the resulting time range overlaps another active slot
        """
        request = coerce_request(SlotUpdate, fields)
        changes = request.model_dump(exclude_unset=True)

        with self._database.transaction() as session:
            row = session.get(SlotRow, slot_id)
            if row is None:
                raise NotFoundError(f"Slot {slot_id} not found")

            day = changes.get("day_of_week", row.day_of_week)
            time_range = TimeRange(
                start=parse_time(changes.get("start_time", row.start_time)),
                end=parse_time(changes.get("end_time", row.end_time)),
            )
            effective_from = parse_date(changes.get("effective_from", row.effective_from))
            effective_until = changes.get("effective_until", row.effective_until)
            if effective_until is not None:
                effective_until = parse_date(effective_until)
            validate_effective_window(effective_from, effective_until)

            is_active = changes.get("is_active", row.is_active)
            reactivated = is_active and not row.is_active

            if is_active and (day != row.day_of_week or reactivated):
                self._check_capacity(session, day, exclude_id=slot_id)

            if is_active and (reactivated or any(name in changes for name in SCHEDULE_FIELDS)):
                exclude_id = slot_id if exclude_self_from_conflict_check else None
                self._check_conflicts(session, day, time_range, exclude_id=exclude_id)

            for name, value in changes.items():
                if name not in SCHEDULE_FIELDS and name not in ("effective_from", "effective_until"):
                    setattr(row, name, value)
            row.day_of_week = day
            row.start_time = time_range.start
            row.end_time = time_range.end
            row.effective_from = effective_from
            row.effective_until = effective_until
            row.updated_at = self._clock()

            session.flush()
            slot = row.to_domain()

        logger.info("Updated slot %s (%s)", slot_id, ", ".join(sorted(changes)) or "no fields")
        return slot

    def delete(self, slot_id: str) -> bool:
        """
        Permanently delete a slot together with all of its exceptions.

        Returns:
            True if a slot was removed
        """
        with self._database.transaction() as session:
            row = session.get(SlotRow, slot_id)
            if row is None:
                return False
            exception_count = len(row.exceptions)
            session.delete(row)

        logger.info("Deleted slot %s and %d exception(s)", slot_id, exception_count)
        return True

    def soft_delete(self, slot_id: str) -> bool:
        """
        Deactivate a slot. Its exceptions are kept but no longer projected.

        Returns:
            True if the slot exists
        """
        with self._database.transaction() as session:
            row = session.get(SlotRow, slot_id)
            if row is None:
                return False
            row.is_active = False
            row.updated_at = self._clock()

        logger.info("Deactivated slot %s", slot_id)
        return True

    def find_by_id(self, slot_id: str) -> Optional[Slot]:
        """Find a slot by id, active or not."""
        with self._database.transaction() as session:
            row = session.get(SlotRow, slot_id)
            return row.to_domain() if row else None

    def find_by_day_of_week(self, day: int) -> List[Slot]:
        """Active slots on a day of week, ordered by start time."""
        validate_day_of_week(day)
        with self._database.transaction() as session:
            return active_slots_for_day(session, day)

    def find_all(self) -> List[Slot]:
        """All slots, including inactive ones, ordered by day then start time."""
        query = select(SlotRow).order_by(SlotRow.day_of_week, SlotRow.start_time)
        with self._database.transaction() as session:
            return [row.to_domain() for row in session.scalars(query)]

    def count_active_for_day(self, day: int) -> int:
        validate_day_of_week(day)
        with self._database.transaction() as session:
            return count_active_slots(session, day)

    def find_effective_in_range(self, start_date: date, end_date: date) -> List[Slot]:
        """
        Active slots whose effective window intersects [start_date, end_date].

        A slot without effective_until extends indefinitely.
        """
        start_date = parse_date(start_date)
        end_date = parse_date(end_date)
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")

        query = (
            select(SlotRow)
            .where(
                SlotRow.is_active.is_(True),
                SlotRow.effective_from <= end_date,
                or_(SlotRow.effective_until.is_(None), SlotRow.effective_until >= start_date),
            )
            .order_by(SlotRow.day_of_week, SlotRow.start_time)
        )
        with self._database.transaction() as session:
            return [row.to_domain() for row in session.scalars(query)]

    def get_weekly_schedule(self) -> Dict[int, List[Slot]]:
        """Active slots grouped by every day of the week (0=Sunday)."""
        schedule: Dict[int, List[Slot]] = {day: [] for day in range(7)}
        for slot in self.find_all():
            if slot.is_active:
                schedule[slot.day_of_week].append(slot)
        return schedule

    def find_conflicts(
        self,
        day: int,
        time_range: TimeRange,
        exclude_id: Optional[str] = None,
    ) -> List[Slot]:
        """Active slots on a day that overlap the given range."""
        validate_day_of_week(day)
        with self._database.transaction() as session:
            return find_conflicts(time_range, active_slots_for_day(session, day), exclude_id=exclude_id)

    def has_conflict(
        self,
        day: int,
        time_range: TimeRange,
        exclude_id: Optional[str] = None,
    ) -> bool:
        return bool(self.find_conflicts(day, time_range, exclude_id=exclude_id))

    def _check_capacity(self, session: Session, day: int, exclude_id: Optional[str] = None) -> None:
        active_count = count_active_slots(session, day, exclude_id=exclude_id)
        try:
            ensure_capacity(active_count, day)
        except CapacityExceededError:
            logger.info("Rejected slot on day %s: %d active slots already", day, active_count)
            raise

    def _check_conflicts(
        self,
        session: Session,
        day: int,
        time_range: TimeRange,
        exclude_id: Optional[str] = None,
    ) -> None:
        try:
            ensure_no_conflict(time_range, active_slots_for_day(session, day), exclude_id=exclude_id)
        except ConflictError:
            logger.info("Rejected slot on day %s: %s overlaps an active slot", day, time_range)
            raise
