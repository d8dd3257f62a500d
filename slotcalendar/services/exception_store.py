"""
Store for date-specific slot exceptions (overrides and cancellations).
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, time
from typing import Any, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..adapters.database import Database, utcnow
from ..adapters.tables import SlotExceptionRow, SlotRow
from ..domain.exceptions import ConflictError, NotFoundError, ValidationError
from ..domain.models import (
    EffectiveSlot,
    SlotException,
    TimeRange,
    day_of_week,
    parse_date,
    parse_optional_time,
    parse_time,
)
from ..domain.rules import ensure_no_conflict
from .requests import ExceptionCreate, ExceptionUpdate, coerce_request
from .slot_store import Clock, active_slots_for_day

logger = logging.getLogger(__name__)


class ExceptionStore:
    """
    Owns the exceptions, at most one per (slot, date).

    An exception that moves a slot to new times must not overlap any other
    active slot's recurring time on that weekday. The excepted slot itself
    is left out of that check.
    """

    def __init__(self, database: Database, clock: Clock = utcnow):
        self._database = database
        self._clock = clock

    def create(self, data: ExceptionCreate | Mapping[str, Any]) -> SlotException:
        """
        Create an exception for one slot on one date.

        Raises:
            ValidationError: If fields are malformed or start is not before end
            NotFoundError: If the slot does not exist
            ConflictError: If the slot already has an exception on that date,
                or the override times overlap another active slot
        """
        request = coerce_request(ExceptionCreate, data)
        start_time = parse_optional_time(request.start_time)
        end_time = parse_optional_time(request.end_time)

        with self._database.transaction() as session:
            if session.get(SlotRow, request.slot_id) is None:
                raise NotFoundError(f"Slot {request.slot_id} not found")

            if self._find_row(session, request.slot_id, request.exception_date) is not None:
                logger.info(
                    "Rejected exception: slot %s already has one on %s",
                    request.slot_id,
                    request.exception_date,
                )
                raise ConflictError(
                    f"Exception already exists for slot {request.slot_id} on "
                    f"{request.exception_date.isoformat()}"
                )

            self._check_override(
                session,
                slot_id=request.slot_id,
                exception_date=request.exception_date,
                is_cancelled=request.is_cancelled,
                start_time=start_time,
                end_time=end_time,
            )

            now = self._clock()
            row = SlotExceptionRow(
                id=request.id or str(uuid.uuid4()),
                slot_id=request.slot_id,
                exception_date=request.exception_date,
                start_time=start_time,
                end_time=end_time,
                is_cancelled=request.is_cancelled,
                reason=request.reason,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.flush()
            exception = row.to_domain()

        logger.info(
            "Created exception %s for slot %s on %s (cancelled=%s)",
            exception.id,
            exception.slot_id,
            exception.exception_date,
            exception.is_cancelled,
        )
        return exception

    def update(self, exception_id: str, fields: ExceptionUpdate | Mapping[str, Any]) -> SlotException:
        """
        Merge fields into an existing exception.

        Fields left out keep their stored value; an empty time clears it.

        Raises:
            NotFoundError: If the exception does not exist
            ValidationError: If the resulting times are out of order
            ConflictError: If the resulting times overlap another active slot
        """
        request = coerce_request(ExceptionUpdate, fields)
        changes = request.model_dump(exclude_unset=True)

        with self._database.transaction() as session:
            row = session.get(SlotExceptionRow, exception_id)
            if row is None:
                raise NotFoundError(f"Exception {exception_id} not found")

            start_time = parse_optional_time(changes["start_time"]) if "start_time" in changes else row.start_time
            end_time = parse_optional_time(changes["end_time"]) if "end_time" in changes else row.end_time
            is_cancelled = changes.get("is_cancelled")
            if is_cancelled is None:
                is_cancelled = row.is_cancelled

            self._check_override(
                session,
                slot_id=row.slot_id,
                exception_date=row.exception_date,
                is_cancelled=is_cancelled,
                start_time=start_time,
                end_time=end_time,
            )

            row.start_time = start_time
            row.end_time = end_time
            row.is_cancelled = is_cancelled
            if "reason" in changes:
                row.reason = changes["reason"]
            row.updated_at = self._clock()

            session.flush()
            exception = row.to_domain()

        logger.info("Updated exception %s (%s)", exception_id, ", ".join(sorted(changes)) or "no fields")
        return exception

    def delete(self, exception_id: str) -> bool:
        """
        Remove an exception; the date reverts to the slot's recurring behaviour.

        Returns:
            True if a row was removed
        """
        with self._database.transaction() as session:
            row = session.get(SlotExceptionRow, exception_id)
            if row is None:
                return False
            session.delete(row)

        logger.info("Deleted exception %s", exception_id)
        return True

    def find_by_id(self, exception_id: str) -> Optional[SlotException]:
        with self._database.transaction() as session:
            row = session.get(SlotExceptionRow, exception_id)
            return row.to_domain() if row else None

    def find_by_slot_and_date(self, slot_id: str, exception_date: date) -> Optional[SlotException]:
        exception_date = parse_date(exception_date)
        with self._database.transaction() as session:
            row = self._find_row(session, slot_id, exception_date)
            return row.to_domain() if row else None

    def find_by_slot_id(self, slot_id: str) -> List[SlotException]:
        query = (
            select(SlotExceptionRow)
            .where(SlotExceptionRow.slot_id == slot_id)
            .order_by(SlotExceptionRow.exception_date)
        )
        return self._fetch(query)

    def find_by_date_range(self, start_date: date, end_date: date) -> List[SlotException]:
        """Exceptions dated within [start_date, end_date], oldest first."""
        start_date, end_date = self._parse_range(start_date, end_date)
        query = (
            select(SlotExceptionRow)
            .where(SlotExceptionRow.exception_date.between(start_date, end_date))
            .order_by(SlotExceptionRow.exception_date)
        )
        return self._fetch(query)

    def find_for_slot_in_range(self, slot_id: str, start_date: date, end_date: date) -> List[SlotException]:
        start_date, end_date = self._parse_range(start_date, end_date)
        query = (
            select(SlotExceptionRow)
            .where(
                SlotExceptionRow.slot_id == slot_id,
                SlotExceptionRow.exception_date.between(start_date, end_date),
            )
            .order_by(SlotExceptionRow.exception_date)
        )
        return self._fetch(query)

    def find_all(self) -> List[SlotException]:
        return self._fetch(select(SlotExceptionRow).order_by(SlotExceptionRow.exception_date))

    def find(
        self,
        slot_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[SlotException]:
        """
        List filter: by slot when given, else by date range when both ends
        are given, else everything.

        Raises:
            ValidationError: If only one end of the date range is given
        """
        if (start_date is None) != (end_date is None):
            raise ValidationError("Both start_date and end_date are required to filter by date")
        if slot_id:
            return self.find_by_slot_id(slot_id)
        if start_date is not None and end_date is not None:
            return self.find_by_date_range(start_date, end_date)
        return self.find_all()

    def get_effective_slot_for_date(self, slot_id: str, on_date: date) -> EffectiveSlot:
        """
        The slot plus its exception for one date (None when there is none).

        Raises:
            NotFoundError: If the slot does not exist
        """
        on_date = parse_date(on_date)
        with self._database.transaction() as session:
            slot_row = session.get(SlotRow, slot_id)
            if slot_row is None:
                raise NotFoundError(f"Slot {slot_id} not found")
            exception_row = self._find_row(session, slot_id, on_date)

            return EffectiveSlot(
                slot=slot_row.to_domain(),
                exception=exception_row.to_domain() if exception_row else None,
            )

    def _fetch(self, query) -> List[SlotException]:
        with self._database.transaction() as session:
            return [row.to_domain() for row in session.scalars(query)]

    @staticmethod
    def _parse_range(start_date: date, end_date: date) -> tuple[date, date]:
        start_date = parse_date(start_date)
        end_date = parse_date(end_date)
        if end_date < start_date:
            raise ValidationError("End date must not be before start date")
        return start_date, end_date

    @staticmethod
    def _find_row(session: Session, slot_id: str, exception_date: date) -> Optional[SlotExceptionRow]:
        query = select(SlotExceptionRow).where(
            SlotExceptionRow.slot_id == slot_id,
            SlotExceptionRow.exception_date == exception_date,
        )
        return session.scalars(query).first()

    @staticmethod
    def _check_override(
        session: Session,
        *,
        slot_id: str,
        exception_date: date,
        is_cancelled: bool,
        start_time: Optional[time],
        end_time: Optional[time],
    ) -> None:
        """
        Validate override times of a non-cancelled exception.

        A time the exception leaves out is taken from the slot, the same way
        the projection fills it in. The weekday comes from the exception date.
        """
        if is_cancelled or (start_time is None and end_time is None):
            return

        if start_time is None or end_time is None:
            slot_row = session.get(SlotRow, slot_id)
            start_time = start_time if start_time is not None else slot_row.start_time
            end_time = end_time if end_time is not None else slot_row.end_time

        time_range = TimeRange(start=parse_time(start_time), end=parse_time(end_time))
        weekday = day_of_week(exception_date)

        try:
            ensure_no_conflict(time_range, active_slots_for_day(session, weekday), exclude_id=slot_id)
        except ConflictError:
            logger.info(
                "Rejected exception for slot %s on %s: %s overlaps another slot",
                slot_id,
                exception_date,
                time_range,
            )
            raise
