"""
Registration domain service - Participant registration state machine.

This module contains the core business logic for event registration:
duplicate detection, verification code generation and checking, and
orchestration of the capacity ledger.

Registration State Machine
==========================

States:
- PENDING: Public self-registration awaiting its verification code
- CONFIRMED: Registration holds a slot
- CANCELLED: Terminal state, slot released if one was held

Valid Transitions:
    (none)    -> PENDING    (public register)
    (none)    -> CONFIRMED  (organizer register, slot consumed immediately)
    PENDING   -> CONFIRMED  (verify, slot consumed now)
    PENDING   -> CANCELLED  (cancel, no slot to release)
    CONFIRMED -> CANCELLED  (cancel, slot released)

An expired PENDING record is never flipped; lookups treat it as absent
so the same email or phone can register again.

Pre-checks in this service are advisory and exist to produce early,
readable errors. The repository's atomic operations re-verify every
condition and are the only source of truth for capacity.
"""

import logging
import secrets
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from .event import Event, Registration, utcnow
from .exceptions import (
    CapacityExhausted,
    ConflictError,
    ExpiredCodeError,
    InvalidCodeError,
    NotFoundError,
    RaceLostError,
    RegistrationError,
    ValidationError,
)
from .notifications import NotificationDispatcher
from .ports import EventRepository, RegistrationStatus
from .results import OperationResult

logger = logging.getLogger(__name__)

REQUIRED_REGISTRATION_FIELDS = ("event_id", "name", "email", "phone")

PHONE_ALREADY_REGISTERED = "This phone number is already registered for this event"
EMAIL_ALREADY_REGISTERED = "You are already registered for this event"
NO_AVAILABLE_SLOTS = "No available slots for this event"


@dataclass
class RegistrationService:
    """
    Domain service for event registration.

    Orchestrates validation, duplicate detection, verification codes,
    ledger calls, and best-effort notifications.
    """

    repository: EventRepository
    dispatcher: NotificationDispatcher
    verification_ttl: timedelta = timedelta(minutes=15)
    clock: Callable[[], datetime] = field(default=utcnow)

    def register(self, data: Mapping[str, Any], is_authenticated: bool = False) -> OperationResult:
        """
        Register a participant for an event.

        Organizer (authenticated) calls create a CONFIRMED record and
        consume a slot immediately. Public calls create a PENDING record
        with a 6-digit code valid for verification_ttl; no slot is
        consumed until verification.

        Args:
            data: Mapping with event_id, name, email, phone
            is_authenticated: True when an organizer makes the call

        Returns:
            OperationResult with the stored registration on success
        """
        try:
            event, registration = self._register(data, is_authenticated)
        except RegistrationError as error:
            return OperationResult.fail(error)

        if registration.status is RegistrationStatus.PENDING:
            self.dispatcher.dispatch(
                "send_verification_code",
                registration.id,
                to=registration.phone,
                name=registration.name,
                event_title=event.title,
                code=registration.verification_code,
            )
            message = "Registration pending. A verification code has been sent."
        else:
            message = "Registration confirmed successfully"

        return OperationResult.ok(data=registration.to_dict(), message=message)

    def verify(self, event_id: str, participant_id: str, code: str) -> OperationResult:
        """
        Confirm a PENDING registration with its verification code.

        Failure order: missing input, event not found, pending record not
        found, code expired, code mismatch, event already full, race lost.
        """
        try:
            event, participant = self._verify(event_id, participant_id, code)
        except RegistrationError as error:
            return OperationResult.fail(error)

        if participant.phone:
            self.dispatcher.dispatch(
                "send_registration_confirmation",
                participant.id,
                to=participant.phone,
                name=participant.name,
                event_title=event.title,
                event_date=event.date_time,
                event_local=event.local,
            )

        return OperationResult.ok(message="Registration confirmed successfully")

    def cancel(self, event_id: str, participant_id: str) -> OperationResult:
        """
        Cancel a PENDING or CONFIRMED registration.

        A second cancel of the same registration reports
        "Active registration not found"; the slot is released once.
        """
        try:
            event, participant = self._cancel(event_id, participant_id)
        except RegistrationError as error:
            return OperationResult.fail(error)

        if participant.phone:
            self.dispatcher.dispatch(
                "send_cancellation_confirmation",
                participant.id,
                to=participant.phone,
                name=participant.name,
                event_title=event.title,
            )

        return OperationResult.ok(message="Registration cancelled successfully")

    def _register(
        self, data: Mapping[str, Any], is_authenticated: bool
    ) -> tuple[Event, Registration]:
        fields = {key: self._clean(data.get(key)) for key in REQUIRED_REGISTRATION_FIELDS}
        if not all(fields.values()):
            raise ValidationError("Missing required fields: event_id, name, email, phone")

        event_id = fields["event_id"]
        email = self._normalize_email(fields["email"])
        phone = fields["phone"]

        event = self._load_event(event_id)
        if not event.is_active and not is_authenticated:
            raise ValidationError("Event is no longer active")

        # Phone first: whichever collides first decides the message
        if self.repository.find_participant_by_phone(event_id, phone):
            raise ConflictError(PHONE_ALREADY_REGISTERED)
        if self.repository.find_participant_by_email(event_id, email):
            raise ConflictError(EMAIL_ALREADY_REGISTERED)

        if event.confirmed_count() >= event.total_slots:
            raise CapacityExhausted(NO_AVAILABLE_SLOTS)

        now = self.clock()
        if is_authenticated:
            registration = Registration(
                name=fields["name"],
                email=email,
                phone=phone,
                status=RegistrationStatus.CONFIRMED,
                registered_at=now,
                confirmed_at=now,
            )
        else:
            registration = Registration(
                name=fields["name"],
                email=email,
                phone=phone,
                status=RegistrationStatus.PENDING,
                verification_code=self._generate_verification_code(),
                verification_code_expires_at=now + self.verification_ttl,
                registered_at=now,
            )

        stored = self.repository.add_participant(event_id, registration)
        if stored is None:
            raise self._explain_rejected_registration(event_id, registration)

        logger.info(
            "Participant %s registered for event %s as %s",
            stored.id,
            event_id,
            stored.status.value,
        )
        return event, stored

    def _verify(self, event_id: str, participant_id: str, code: str) -> tuple[Event, Registration]:
        if not event_id or not participant_id or not code:
            raise ValidationError(
                "Missing required fields: event_id, participant_id, verification_code"
            )

        event = self._load_event(event_id)
        participant = event.find_participant(participant_id, RegistrationStatus.PENDING)
        if participant is None:
            raise NotFoundError("Pending registration not found")

        if participant.is_expired(self.clock()):
            raise ExpiredCodeError("Verification code has expired")

        stored_code = participant.verification_code or ""
        if not secrets.compare_digest(stored_code.encode(), code.strip().encode()):
            raise InvalidCodeError("Invalid verification code")

        if event.confirmed_count() >= event.total_slots:
            raise CapacityExhausted(NO_AVAILABLE_SLOTS)

        if not self.repository.confirm_participant(event_id, participant_id):
            current = self.repository.find_by_id(event_id)
            if current is not None and current.confirmed_count() >= current.total_slots:
                raise CapacityExhausted(NO_AVAILABLE_SLOTS)
            raise RaceLostError("Failed to confirm registration")

        logger.info("Participant %s confirmed for event %s", participant_id, event_id)
        return event, participant

    def _cancel(self, event_id: str, participant_id: str) -> tuple[Event, Registration]:
        if not event_id or not participant_id:
            raise ValidationError("Event ID and Participant ID are required")

        event = self._load_event(event_id)
        participant = event.find_participant(
            participant_id, RegistrationStatus.PENDING, RegistrationStatus.CONFIRMED
        )
        if participant is None:
            raise NotFoundError("Active registration not found")

        if not self.repository.cancel_participant(event_id, participant_id):
            raise NotFoundError("Active registration not found")

        logger.info("Participant %s cancelled for event %s", participant_id, event_id)
        return event, participant

    def _load_event(self, event_id: str) -> Event:
        event = self.repository.find_by_id(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def _explain_rejected_registration(
        self, event_id: str, registration: Registration
    ) -> RegistrationError:
        """
        Turn a failed conditional insert into the most specific error.

        The re-read is advisory; the write already decided the outcome.
        """
        logger.info("Conditional registration insert rejected for event %s", event_id)
        if self.repository.find_participant_by_phone(event_id, registration.phone):
            return ConflictError(PHONE_ALREADY_REGISTERED)
        if self.repository.find_participant_by_email(event_id, registration.email):
            return ConflictError(EMAIL_ALREADY_REGISTERED)
        event = self.repository.find_by_id(event_id)
        if event is None:
            return NotFoundError("Event not found")
        if registration.status is RegistrationStatus.CONFIRMED and not event.has_available_slots():
            return CapacityExhausted(NO_AVAILABLE_SLOTS)
        return RaceLostError("Failed to register. Event may be full or was deleted.")

    @staticmethod
    def _clean(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()

    def _generate_verification_code(self) -> str:
        """
        Generate a cryptographically secure 6-digit verification code.

        Range is "100000"-"999999", so the code never has a leading zero.
        """
        return str(100000 + secrets.randbelow(900000))
