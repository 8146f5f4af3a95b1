from __future__ import annotations

from typing import Any


class BookingError(Exception):
    error_code = "BOOKING_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.human_message = message


class NotFoundError(BookingError):
    error_code = "NOT_FOUND"


class OutOfHoursError(BookingError):
    error_code = "OUT_OF_HOURS"


class PastDateError(BookingError):
    error_code = "PAST_DATE"


class ConflictError(BookingError):
    error_code = "CONFLICT"

    def __init__(self, message: str, blocking: Any | None = None) -> None:
        super().__init__(message)
        self.blocking = blocking


class InvalidTransitionError(BookingError):
    error_code = "INVALID_TRANSITION"


class InvalidStateError(BookingError):
    error_code = "INVALID_STATE"


class PolicyViolationError(BookingError):
    error_code = "POLICY_VIOLATION"


class StorageError(BookingError):
    """Raised by store adapters when the database fails. Never retried by the core."""

    error_code = "STORAGE_ERROR"
