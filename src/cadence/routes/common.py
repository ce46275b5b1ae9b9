"""
Route Helpers

Path/query parsing and the mapping from scheduling errors to HTTP
responses shared by all routers.
"""
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException

from ..errors import (
    EventNotFoundError,
    HandlerExecutionError,
    HandlerNotFoundError,
    NotAttendeeError,
    SchedulingError,
    ValidationError,
)


def parse_uuid(value: str, label: str = "ID") -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label}")


def parse_datetime(value: str, label: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} format (use ISO)")


def http_error(error: SchedulingError) -> HTTPException:
    """HTTPException for a scheduling error"""
    if isinstance(error, NotAttendeeError):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, EventNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, HandlerNotFoundError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, HandlerExecutionError):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
