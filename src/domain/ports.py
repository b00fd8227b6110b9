"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .event import Event, Registration


class RegistrationStatus(str, Enum):
    """
    Registration lifecycle states.

    State Transitions:
    - PENDING -> CONFIRMED (verification code accepted)
    - PENDING -> CANCELLED (participant cancels before verifying)
    - CONFIRMED -> CANCELLED (participant cancels, slot released)

    Organizer-created registrations start in CONFIRMED.

    An expired PENDING record is not a stored state: it is a computed
    view (PENDING with verification_code_expires_at in the past) that
    lookups treat as absent.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @classmethod
    def normalize(cls, value: "str | RegistrationStatus") -> "RegistrationStatus":
        """Map stored literals to a status, treating legacy 'active' as CONFIRMED."""
        if isinstance(value, RegistrationStatus):
            return value
        if value == "active":
            return cls.CONFIRMED
        return cls(value)


class EventRepository(Protocol):
    """
    Port interface for event persistence and the capacity ledger.

    Every method that changes a slot counter must do so in the same
    atomic unit as the participant status change it accounts for.
    """

    def create(self, event: "Event") -> "Event":
        """Persist a new event and return it with its assigned id."""
        ...

    def find_by_id(self, event_id: str) -> "Event | None":
        """Load an event with its participant list."""
        ...

    def find_by_event_code(self, event_code: str) -> "Event | None":
        """Load an event by its short public code."""
        ...

    def list_events(self, *, owner_id: str | None = None, active_only: bool = False) -> list["Event"]:
        """List events ordered by date, optionally filtered by owner or active flag."""
        ...

    def find_upcoming(self, start: datetime, end: datetime) -> list["Event"]:
        """List active events whose date falls in [start, end)."""
        ...

    def update_details(self, event_id: str, changes: dict[str, Any]) -> "Event | None":
        """Update descriptive fields (title, description, date_time, local, is_active)."""
        ...

    def resize(self, event_id: str, total_slots: int) -> "Event | None":
        """
        Atomically change total_slots and recompute available_slots.

        Returns None when the event does not exist or the new total is
        below the current confirmed-participant count.
        """
        ...

    def delete(self, event_id: str) -> bool:
        """Delete an event that has no confirmed participants."""
        ...

    def add_participant(self, event_id: str, registration: "Registration") -> "Registration | None":
        """
        Atomically append a registration to an event.

        Checks (all inside the same atomic unit):
        1. No confirmed or unexpired pending record with the same email
        2. No confirmed or unexpired pending record with the same phone
        3. For CONFIRMED records: available_slots > 0, then decrement

        PENDING records are appended without touching available_slots.

        Returns:
            The stored registration, or None when the conditional write
            matched nothing (race lost, event full, duplicate, no event)
        """
        ...

    def confirm_participant(self, event_id: str, participant_id: str) -> bool:
        """
        Atomically flip a PENDING record to CONFIRMED and consume a slot.

        Re-checks inside the atomic unit that the confirmed count is still
        below total_slots, since the event may have filled while the
        record was pending.

        Returns:
            False when the record is missing, not PENDING, or no slot remains
        """
        ...

    def cancel_participant(self, event_id: str, participant_id: str) -> bool:
        """
        Atomically flip a PENDING or CONFIRMED record to CANCELLED.

        A slot is released only if the record was CONFIRMED, and never
        beyond total_slots.

        Returns:
            False when no pending/confirmed record matched (idempotent)
        """
        ...

    def find_participant_by_email(self, event_id: str, email: str) -> "Registration | None":
        """Find a confirmed or unexpired pending record by email (case-insensitive)."""
        ...

    def find_participant_by_phone(self, event_id: str, phone: str) -> "Registration | None":
        """Find a confirmed or unexpired pending record by exact phone."""
        ...


class Notifier(Protocol):
    """
    Port interface for participant messaging.

    Implementations may raise on delivery failure; callers dispatch
    through NotificationDispatcher which logs and swallows failures.
    """

    def send_verification_code(self, *, to: str, name: str, event_title: str, code: str) -> None: ...

    def send_registration_confirmation(
        self,
        *,
        to: str,
        name: str,
        event_title: str,
        event_date: datetime,
        event_local: str | None,
    ) -> None: ...

    def send_cancellation_confirmation(self, *, to: str, name: str, event_title: str) -> None: ...

    def send_event_reminder(
        self,
        *,
        to: str,
        name: str,
        event_title: str,
        event_date: datetime,
        event_local: str | None,
    ) -> None: ...


class OrganizerDirectory(Protocol):
    """Port interface for organizer identity."""

    def authenticate(self, email: str, password: str) -> str | None:
        """
        Check organizer credentials.

        Returns:
            Organizer id on success, None otherwise
        """
        ...
