"""
Input schemas for store writes using Pydantic.

These cover the field-level rules (lengths, patterns, ranges). Ordering of
start/end times and all conflict rules are checked again by the stores.
"""

from datetime import date
from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import ValidationError
from ..domain.models import TIME_PATTERN

TIME_REGEX = TIME_PATTERN.pattern

RequestT = TypeVar("RequestT", bound=BaseModel)


def _optional_time(value: Optional[str]) -> Optional[str]:
    """Empty strings mean 'no time'; anything else must be HH:MM."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not TIME_PATTERN.match(value):
        raise ValueError(f"Invalid time '{value}', expected HH:MM (24h)")
    return value


class SlotCreate(BaseModel):
    """Fields for a new recurring slot."""
    id: Optional[str] = None  # Generated by the store when omitted
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    day_of_week: int = Field(ge=0, le=6)
    start_time: str = Field(pattern=TIME_REGEX)
    end_time: str = Field(pattern=TIME_REGEX)
    is_recurring: bool = True
    effective_from: date
    effective_until: Optional[date] = None

    @model_validator(mode="after")
    def validate_effective_window(self) -> "SlotCreate":
        """Ensure an explicit effective_until is later than effective_from."""
        if self.effective_until is not None and self.effective_until <= self.effective_from:
            raise ValueError("effective_until must be later than effective_from")
        return self


class SlotUpdate(BaseModel):
    """Partial update of a recurring slot; only the fields that are set get merged."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    start_time: Optional[str] = Field(default=None, pattern=TIME_REGEX)
    end_time: Optional[str] = Field(default=None, pattern=TIME_REGEX)
    is_recurring: Optional[bool] = None
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None
    is_active: Optional[bool] = None

    @field_validator("title", "day_of_week", "start_time", "end_time", "effective_from", "is_recurring", "is_active")
    @classmethod
    def reject_explicit_null(cls, value: Any) -> Any:
        """Required columns may be left out but not cleared."""
        if value is None:
            raise ValueError("field cannot be null")
        return value


class ExceptionCreate(BaseModel):
    """Fields for a new date exception."""
    id: Optional[str] = None
    slot_id: str = Field(min_length=1)
    exception_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_cancelled: bool = False
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: Optional[str]) -> Optional[str]:
        return _optional_time(value)


class ExceptionUpdate(BaseModel):
    """Partial update of a date exception."""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_cancelled: Optional[bool] = None
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: Optional[str]) -> Optional[str]:
        return _optional_time(value)


def coerce_request(model: Type[RequestT], data: RequestT | Mapping[str, Any]) -> RequestT:
    """
    Accept either a ready schema instance or a plain mapping.

    Raises:
        ValidationError: If the mapping does not satisfy the schema
    """
    if isinstance(data, model):
        return data

    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(_summarize(exc)) from exc


def _summarize(exc: PydanticValidationError) -> str:
    """Flatten pydantic's error list into one line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "request"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)
