"""
Domain errors raised by the scheduling engine.

Input errors are caller-fixable, conflict errors are expected races the
client recovers from by re-fetching. Each error knows its HTTP status so the
API layer converts it in one place (see `main.register_error_handlers`).
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class SchedulingError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


# --- Input errors ---

class InputError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST


class ParseError(InputError):
    def __init__(self, message: str, line_number: Optional[int] = None, token: Optional[str] = None):
        details = {}
        if line_number is not None:
            details["line"] = line_number
        if token is not None:
            details["token"] = token
        super().__init__(message, details=details)
        self.line_number = line_number
        self.token = token


class InvalidDurationError(InputError):
    pass


class ValidationError(InputError):
    pass


# --- Lookups ---

class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class SlotNotFoundError(NotFoundError):
    pass


class SnapshotNotFoundError(NotFoundError):
    pass


# --- Conflicts ---

class ConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT


class SlotUnavailableError(ConflictError):
    pass


class DuplicateStageBookingError(ConflictError):
    pass


class BookingClosedError(ConflictError):
    pass


class SnapshotVersionConflictError(ConflictError):
    pass
