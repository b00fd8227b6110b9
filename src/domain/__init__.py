"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for event registration
and capacity accounting. It defines its own port interfaces for
infrastructure abstraction, keeping the domain decoupled from the
database, the web framework, and the messaging channel.
"""

from .event import Event, Registration
from .events import EventService
from .exceptions import (
    CapacityExhausted,
    ConflictError,
    ErrorKind,
    ExpiredCodeError,
    ForbiddenError,
    InvalidCodeError,
    NotFoundError,
    RaceLostError,
    RegistrationError,
    ValidationError,
)
from .notifications import NotificationDispatcher
from .ports import EventRepository, Notifier, OrganizerDirectory, RegistrationStatus
from .registration import RegistrationService
from .reminders import ReminderService
from .results import OperationResult

__all__ = [
    "CapacityExhausted",
    "ConflictError",
    "ErrorKind",
    "Event",
    "EventRepository",
    "EventService",
    "ExpiredCodeError",
    "ForbiddenError",
    "InvalidCodeError",
    "NotFoundError",
    "NotificationDispatcher",
    "Notifier",
    "OperationResult",
    "OrganizerDirectory",
    "RaceLostError",
    "Registration",
    "RegistrationError",
    "RegistrationService",
    "RegistrationStatus",
    "ReminderService",
    "ValidationError",
]
