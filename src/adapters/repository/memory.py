"""
In-memory repository adapter - Implements EventRepository protocol.

Every capacity-affecting operation runs under a lock keyed by event id,
so check-and-mutate is atomic per event while different events never
contend. Callers always receive copies; stored state is only changed
inside the ledger methods.

Intended for development (storage_backend=memory) and tests.
"""

import copy
import logging
import threading
import uuid
from collections.abc import Callable
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

from src.domain.event import Event, Registration, utcnow
from src.domain.ports import RegistrationStatus

logger = logging.getLogger(__name__)


class InMemoryEventRepository:
    """
    Implements EventRepository protocol with per-event locks.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._events: dict[str, Event] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._clock = clock

    @contextmanager
    def _locked(self, event_id: str) -> Iterator[Event | None]:
        """Hold the event's lock and yield the stored event (or None)."""
        with self._registry_lock:
            lock = self._locks.get(event_id)
        if lock is None:
            yield None
            return
        with lock:
            yield self._events.get(event_id)

    def create(self, event: Event) -> Event:
        stored = copy.deepcopy(event)
        stored.id = stored.id or uuid.uuid4().hex
        for participant in stored.participants:
            participant.id = participant.id or uuid.uuid4().hex
            participant.event_id = stored.id
        with self._registry_lock:
            self._events[stored.id] = stored
            self._locks[stored.id] = threading.Lock()
        return copy.deepcopy(stored)

    def find_by_id(self, event_id: str) -> Event | None:
        with self._locked(event_id) as event:
            return copy.deepcopy(event) if event is not None else None

    def find_by_event_code(self, event_code: str) -> Event | None:
        with self._registry_lock:
            candidates = list(self._events.values())
        for event in candidates:
            if event.event_code == event_code:
                return self.find_by_id(event.id)
        return None

    def list_events(self, *, owner_id: str | None = None, active_only: bool = False) -> list[Event]:
        with self._registry_lock:
            event_ids = list(self._events)
        events = [e for e in (self.find_by_id(i) for i in event_ids) if e is not None]
        if owner_id is not None:
            events = [e for e in events if e.owner_id == owner_id]
        if active_only:
            events = [e for e in events if e.is_active]
        return sorted(events, key=lambda e: e.date_time)

    def find_upcoming(self, start: datetime, end: datetime) -> list[Event]:
        return [e for e in self.list_events(active_only=True) if start <= e.date_time < end]

    def update_details(self, event_id: str, changes: dict[str, Any]) -> Event | None:
        with self._locked(event_id) as event:
            if event is None:
                return None
            for key, value in changes.items():
                setattr(event, key, value)
            return copy.deepcopy(event)

    def resize(self, event_id: str, total_slots: int) -> Event | None:
        with self._locked(event_id) as event:
            if event is None:
                return None
            confirmed = event.confirmed_count()
            if total_slots < confirmed:
                return None
            event.total_slots = total_slots
            event.available_slots = total_slots - confirmed
            return copy.deepcopy(event)

    def delete(self, event_id: str) -> bool:
        with self._locked(event_id) as event:
            if event is None or event.confirmed_count() > 0:
                return False
            with self._registry_lock:
                del self._events[event_id]
                del self._locks[event_id]
            return True

    def add_participant(self, event_id: str, registration: Registration) -> Registration | None:
        with self._locked(event_id) as event:
            if event is None:
                return None

            now = self._clock()
            email = registration.email.lower()
            for existing in event.participants:
                if not existing.is_live(now):
                    continue
                if existing.email == email or existing.phone == registration.phone:
                    logger.info("Duplicate registration rejected for event %s", event_id)
                    return None

            if registration.status is RegistrationStatus.CONFIRMED:
                if event.available_slots <= 0:
                    logger.info("Registration rejected for full event %s", event_id)
                    return None
                event.available_slots -= 1

            stored = copy.deepcopy(registration)
            stored.id = uuid.uuid4().hex
            stored.event_id = event_id
            event.participants.append(stored)
            return copy.deepcopy(stored)

    def confirm_participant(self, event_id: str, participant_id: str) -> bool:
        with self._locked(event_id) as event:
            if event is None:
                return False
            participant = event.find_participant(participant_id, RegistrationStatus.PENDING)
            if participant is None:
                return False
            if event.confirmed_count() >= event.total_slots or event.available_slots <= 0:
                logger.info("Confirmation rejected for full event %s", event_id)
                return False

            now = self._clock()
            participant.status = RegistrationStatus.CONFIRMED
            participant.confirmed_at = now
            participant.verified_at = now
            event.available_slots -= 1
            return True

    def cancel_participant(self, event_id: str, participant_id: str) -> bool:
        with self._locked(event_id) as event:
            if event is None:
                return False
            participant = event.find_participant(
                participant_id, RegistrationStatus.PENDING, RegistrationStatus.CONFIRMED
            )
            if participant is None:
                return False

            held_slot = participant.status is RegistrationStatus.CONFIRMED
            participant.status = RegistrationStatus.CANCELLED
            if held_slot:
                event.increment_slots()
            return True

    def find_participant_by_email(self, event_id: str, email: str) -> Registration | None:
        email = email.strip().lower()
        return self._find_live(event_id, lambda p: p.email == email)

    def find_participant_by_phone(self, event_id: str, phone: str) -> Registration | None:
        phone = phone.strip()
        return self._find_live(event_id, lambda p: p.phone == phone)

    def _find_live(
        self, event_id: str, matches: Callable[[Registration], bool]
    ) -> Registration | None:
        with self._locked(event_id) as event:
            if event is None:
                return None
            now = self._clock()
            for participant in event.participants:
                if participant.is_live(now) and matches(participant):
                    return copy.deepcopy(participant)
            return None
