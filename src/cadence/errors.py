"""
Scheduling Errors

Exception hierarchy raised by the scheduling services.
Routes translate these into HTTP status codes.
"""


class SchedulingError(Exception):
    """Base class for all scheduling engine errors"""


class ValidationError(SchedulingError, ValueError):
    """Bad input shape or ordering. Never retried."""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class EventNotFoundError(SchedulingError, LookupError):
    """Scheduled event does not exist or has been soft-deleted"""


class HandlerNotFoundError(SchedulingError):
    """No enabled handler is registered for a handler type"""

    def __init__(self, handler_type: str):
        super().__init__(f"Handler not found: {handler_type}")
        self.handler_type = handler_type


class HandlerExecutionError(SchedulingError):
    """Handler reported failure without raising its own exception"""


class NotAttendeeError(ValidationError):
    """Actor tried to RSVP to an event they are not invited to"""
