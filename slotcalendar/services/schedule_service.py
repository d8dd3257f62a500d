"""
Explicit schedule-editing operations built on the two stores.

Changing a slot for every week and changing it for one date are separate
calls; the caller picks one instead of the payload shape deciding.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from ..domain.exceptions import NotFoundError
from ..domain.models import Slot, SlotException, format_time, parse_date
from .exception_store import ExceptionStore
from .requests import SlotUpdate
from .slot_store import SlotStore

DEFAULT_UPDATE_REASON = "Slot updated for specific date"
DEFAULT_CANCEL_REASON = "Slot cancelled for specific date"


@dataclass
class ExceptionUpsert:
    """Outcome of a create-or-update of a date exception."""
    exception: SlotException
    created: bool


class ScheduleService:
    """Editing entry points for callers such as the CLI or an HTTP layer."""

    def __init__(self, slot_store: SlotStore, exception_store: ExceptionStore) -> None:
        self._slot_store = slot_store
        self._exception_store = exception_store

    def update_recurring_slot(self, slot_id: str, fields: SlotUpdate | Mapping[str, Any]) -> Slot:
        """Change the slot for every week it recurs."""
        return self._slot_store.update(slot_id, fields)

    def upsert_exception_for_date(
        self,
        slot_id: str,
        on_date: date,
        *,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> ExceptionUpsert:
        """
        Change the slot's times on one date only.

        Times not given fall back to the slot's own. An existing exception for
        the date is updated (and un-cancelled) instead of duplicated.

        Raises:
            NotFoundError: If the slot does not exist
            ConflictError: If the new times overlap another active slot
        """
        on_date = parse_date(on_date)
        slot = self._require_slot(slot_id)
        fields = {
            "start_time": start_time or format_time(slot.start_time),
            "end_time": end_time or format_time(slot.end_time),
            "is_cancelled": False,
            "reason": reason or DEFAULT_UPDATE_REASON,
        }

        existing = self._exception_store.find_by_slot_and_date(slot_id, on_date)
        if existing is not None:
            exception = self._exception_store.update(existing.id, fields)
            return ExceptionUpsert(exception=exception, created=False)

        exception = self._exception_store.create(
            {"slot_id": slot_id, "exception_date": on_date, **fields}
        )
        return ExceptionUpsert(exception=exception, created=True)

    def cancel_slot_for_date(
        self,
        slot_id: str,
        on_date: date,
        reason: Optional[str] = None,
    ) -> ExceptionUpsert:
        """
        Cancel one occurrence of a slot.

        Raises:
            NotFoundError: If the slot does not exist
        """
        on_date = parse_date(on_date)
        self._require_slot(slot_id)
        fields = {"is_cancelled": True, "reason": reason or DEFAULT_CANCEL_REASON}

        existing = self._exception_store.find_by_slot_and_date(slot_id, on_date)
        if existing is not None:
            exception = self._exception_store.update(existing.id, fields)
            return ExceptionUpsert(exception=exception, created=False)

        exception = self._exception_store.create(
            {"slot_id": slot_id, "exception_date": on_date, **fields}
        )
        return ExceptionUpsert(exception=exception, created=True)

    def remove_slot(self, slot_id: str, permanent: bool = False) -> None:
        """
        Deactivate a slot, or delete it with its exceptions when permanent.

        Raises:
            NotFoundError: If the slot does not exist
        """
        removed = (
            self._slot_store.delete(slot_id)
            if permanent
            else self._slot_store.soft_delete(slot_id)
        )
        if not removed:
            raise NotFoundError(f"Slot {slot_id} not found")

    def _require_slot(self, slot_id: str) -> Slot:
        slot = self._slot_store.find_by_id(slot_id)
        if slot is None:
            raise NotFoundError(f"Slot {slot_id} not found")
        return slot
