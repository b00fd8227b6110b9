"""
Domain exceptions - Semantic error types for registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each exception carries a user-facing message and an ErrorKind that
the HTTP layer maps to a status code.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a business rule failure."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    CAPACITY = "capacity"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    RACE_LOST = "race_lost"
    FORBIDDEN = "forbidden"


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    kind: ErrorKind = ErrorKind.VALIDATION
    default_message = "Registration failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(RegistrationError):
    """Missing or malformed input, detected before any store access."""

    kind = ErrorKind.VALIDATION
    default_message = "Invalid input"


class NotFoundError(RegistrationError):
    """Event or participant record does not exist (or is expired)."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class ConflictError(RegistrationError):
    """Duplicate email or phone registration attempt."""

    kind = ErrorKind.CONFLICT
    default_message = "You are already registered for this event"


class CapacityExhausted(RegistrationError):
    """No confirmed slots remain."""

    kind = ErrorKind.CAPACITY
    default_message = "No available slots for this event"


class InvalidCodeError(RegistrationError):
    """Verification code mismatch."""

    kind = ErrorKind.INVALID_CODE
    default_message = "Invalid verification code"


class ExpiredCodeError(RegistrationError):
    """Verification window has elapsed."""

    kind = ErrorKind.EXPIRED
    default_message = "Verification code has expired"


class RaceLostError(RegistrationError):
    """The atomic conditional write matched nothing after pre-checks passed."""

    kind = ErrorKind.RACE_LOST
    default_message = "Operation failed"


class ForbiddenError(RegistrationError):
    """Caller does not own the event."""

    kind = ErrorKind.FORBIDDEN
    default_message = "You do not have permission to modify this event"
