"""
Domain-specific exception hierarchy for the slot calendar.
"""


class SlotCalendarError(Exception):
    """Base class for all application-level errors."""


class ValidationError(SlotCalendarError, ValueError):
    """Raised when a time, date or field combination is malformed."""


class TimeFormatError(ValidationError):
    """Raised when a time-of-day string is not HH:MM (24h)."""


class NotFoundError(SlotCalendarError):
    """Raised when a referenced slot or exception does not exist."""


class CapacityExceededError(SlotCalendarError):
    """Raised when a day of the week already holds the maximum number of active slots."""


class ConflictError(SlotCalendarError):
    """Raised on overlapping time ranges or a duplicate exception for a slot and date."""


class StorageError(SlotCalendarError):
    """Raised when the storage layer fails for reasons unrelated to the domain rules."""
