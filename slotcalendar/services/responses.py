"""
Uniform response envelope for callers that expose the stores over HTTP.

Maps domain outcomes to ``{success, data, error, message}`` plus a status
code. Unexpected failures never leak their details.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..domain.exceptions import (
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_MAPPING = (
    (ValidationError, 400, "Validation error"),
    (PydanticValidationError, 400, "Validation error"),
    (NotFoundError, 404, "Not found"),
    (CapacityExceededError, 409, "Limit exceeded"),
    (ConflictError, 409, "Conflict"),
)

INTERNAL_ERROR = "Internal server error"
INTERNAL_MESSAGE = "An unexpected error occurred"


class ApiResponse(BaseModel):
    """Response envelope."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Envelope as JSON-ready dict, absent keys omitted."""
        return self.model_dump(exclude_none=True)


def serialize(data: Any) -> Any:
    """Turn domain records (and containers of them) into JSON-ready values."""
    if hasattr(data, "to_dict"):
        return data.to_dict()
    if isinstance(data, dict):
        return {str(key): serialize(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [serialize(item) for item in data]
    return data


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    status: int = 200,
) -> Tuple[int, ApiResponse]:
    return status, ApiResponse(success=True, data=serialize(data), message=message)


def created_response(data: Any = None, message: Optional[str] = None) -> Tuple[int, ApiResponse]:
    return success_response(data, message=message, status=201)


def error_response(exc: Exception) -> Tuple[int, ApiResponse]:
    """
    Map an exception to a status code and an error envelope.

    Returns:
        (status, envelope); 500 with a generic message for anything that is
        not one of the domain errors
    """
    for error_type, status, label in ERROR_MAPPING:
        if isinstance(exc, error_type):
            return status, ApiResponse(success=False, error=label, message=str(exc))

    logger.error("Unhandled error: %s", exc, exc_info=exc)
    return 500, ApiResponse(success=False, error=INTERNAL_ERROR, message=INTERNAL_MESSAGE)
