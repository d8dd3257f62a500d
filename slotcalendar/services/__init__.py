"""
Service layer: stores, projection and editing operations.

The response helpers are the entry point for an HTTP layer: call the
stores or the service, then wrap the result with ``success_response`` /
``created_response`` or the raised error with ``error_response``.
"""

from .exception_store import ExceptionStore
from .responses import ApiResponse, created_response, error_response, serialize, success_response
from .schedule_projector import ExceptionSourceProtocol, ScheduleProjector, SlotSourceProtocol
from .schedule_service import ExceptionUpsert, ScheduleService
from .slot_store import SlotStore

__all__ = [
    "ExceptionStore",
    "ApiResponse",
    "created_response",
    "error_response",
    "serialize",
    "success_response",
    "ExceptionSourceProtocol",
    "ScheduleProjector",
    "SlotSourceProtocol",
    "ExceptionUpsert",
    "ScheduleService",
    "SlotStore",
]
