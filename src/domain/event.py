"""
Event aggregate and registration records.

The Event holds total/available capacity and the ordered list of
participant registrations. Its slot mutators are in-memory guards only;
the authoritative enforcement happens in the repository's atomic
operations, because in-memory guards cannot prevent races across
concurrent requests.

Invariants:
- 0 <= available_slots <= total_slots
- available_slots == total_slots - count(participants with status CONFIRMED)
- participants are never removed, only status-flipped
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .exceptions import CapacityExhausted
from .ports import RegistrationStatus


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class Registration:
    """One participant's registration within an event."""

    name: str
    email: str
    phone: str
    status: RegistrationStatus = RegistrationStatus.CONFIRMED
    id: str | None = None
    event_id: str | None = None
    verification_code: str | None = None
    verification_code_expires_at: datetime | None = None
    registered_at: datetime = field(default_factory=utcnow)
    confirmed_at: datetime | None = None
    verified_at: datetime | None = None

    def __post_init__(self) -> None:
        self.status = RegistrationStatus.normalize(self.status)
        self.email = self.email.strip().lower()
        self.phone = self.phone.strip()

    def is_expired(self, now: datetime | None = None) -> bool:
        """A pending record whose verification window has elapsed."""
        if self.status is not RegistrationStatus.PENDING:
            return False
        if self.verification_code_expires_at is None:
            return False
        return (now or utcnow()) > self.verification_code_expires_at

    def is_live(self, now: datetime | None = None) -> bool:
        """Confirmed, or pending with an unexpired code. Blocks re-registration."""
        if self.status is RegistrationStatus.CONFIRMED:
            return True
        return self.status is RegistrationStatus.PENDING and not self.is_expired(now)

    def to_dict(self) -> dict[str, Any]:
        # verification_code only travels through the notifier
        return {
            "id": self.id,
            "event_id": self.event_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "status": self.status.value,
            "verification_code_expires_at": self.verification_code_expires_at,
            "registered_at": self.registered_at,
            "confirmed_at": self.confirmed_at,
            "verified_at": self.verified_at,
        }


@dataclass
class Event:
    """Event aggregate: capacity counters plus embedded registrations."""

    title: str
    description: str
    date_time: datetime
    total_slots: int
    available_slots: int | None = None
    id: str | None = None
    owner_id: str | None = None
    local: str | None = None
    is_active: bool = True
    event_code: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    participants: list[Registration] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.available_slots is None:
            self.available_slots = self.total_slots

    def has_available_slots(self) -> bool:
        return self.available_slots > 0

    def decrement_slots(self) -> None:
        if not self.has_available_slots():
            raise CapacityExhausted()
        self.available_slots -= 1

    def increment_slots(self) -> None:
        # Already full: a duplicate release must not push past total_slots
        if self.available_slots >= self.total_slots:
            return
        self.available_slots += 1

    def confirmed_count(self) -> int:
        return sum(1 for p in self.participants if p.status is RegistrationStatus.CONFIRMED)

    def find_participant(
        self, participant_id: str, *statuses: RegistrationStatus
    ) -> Registration | None:
        """Find a participant by id, optionally restricted to the given statuses."""
        for participant in self.participants:
            if participant.id != participant_id:
                continue
            if statuses and participant.status not in statuses:
                continue
            return participant
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date_time": self.date_time,
            "total_slots": self.total_slots,
            "available_slots": self.available_slots,
            "owner_id": self.owner_id,
            "local": self.local,
            "is_active": self.is_active,
            "event_code": self.event_code,
            "created_at": self.created_at,
        }
