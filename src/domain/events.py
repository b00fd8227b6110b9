"""
Event management use cases - Create, update, delete and read events.

Only the event owner may mutate an event or view its participant list.
Capacity changes go through the repository's atomic resize so the slot
counter never drifts from the confirmed-participant count.
"""

import logging
import secrets
import string
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .event import Event
from .exceptions import (
    ForbiddenError,
    NotFoundError,
    RaceLostError,
    RegistrationError,
    ValidationError,
)
from .ports import EventRepository, RegistrationStatus
from .results import OperationResult

logger = logging.getLogger(__name__)

EVENT_CODE_ALPHABET = string.ascii_uppercase + string.digits
EVENT_CODE_LENGTH = 5
EVENT_CODE_MAX_ATTEMPTS = 10

DETAIL_FIELDS = ("title", "description", "date_time", "local", "is_active")


def parse_date_time(value: Any) -> datetime:
    """Accept a datetime or an ISO 8601 string; naive values are taken as UTC."""
    if not isinstance(value, datetime):
        try:
            value = datetime.fromisoformat(str(value))
        except ValueError:
            raise ValidationError("Invalid date format") from None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def parse_total_slots(value: Any) -> int:
    try:
        total_slots = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Total slots must be a number") from None
    if total_slots < 1:
        raise ValidationError("Total slots must be at least 1")
    return total_slots


@dataclass
class EventService:
    """Domain service for event lifecycle management."""

    repository: EventRepository

    def create_event(self, data: Mapping[str, Any], owner_id: str) -> OperationResult:
        """
        Create an event owned by owner_id with available_slots = total_slots.

        Args:
            data: Mapping with title, description, date_time, total_slots
                  and optional local
            owner_id: Verified organizer id

        Returns:
            OperationResult with the created event
        """
        try:
            required = ("title", "description", "date_time", "total_slots")
            if any(data.get(key) in (None, "") for key in required):
                raise ValidationError(
                    "Missing required fields: title, description, date_time, total_slots"
                )

            total_slots = parse_total_slots(data["total_slots"])
            event = Event(
                title=str(data["title"]).strip(),
                description=str(data["description"]).strip(),
                date_time=parse_date_time(data["date_time"]),
                total_slots=total_slots,
                available_slots=total_slots,
                owner_id=owner_id,
                local=data.get("local"),
                is_active=True,
                event_code=self._generate_unique_event_code(),
            )
            created = self.repository.create(event)
        except RegistrationError as error:
            return OperationResult.fail(error)

        logger.info("Event %s created by organizer %s", created.id, owner_id)
        return OperationResult.ok(data=created.to_dict())

    def get_event(self, event_id: str) -> OperationResult:
        event = self.repository.find_by_id(event_id)
        if event is None:
            return OperationResult.fail(NotFoundError("Event not found"))
        return OperationResult.ok(data=event.to_dict())

    def list_events(self, owner_id: str | None = None) -> OperationResult:
        """List active events for the public, or all of an owner's events."""
        if owner_id is not None:
            events = self.repository.list_events(owner_id=owner_id)
        else:
            events = self.repository.list_events(active_only=True)
        return OperationResult.ok(data=[event.to_dict() for event in events])

    def update_event(
        self, event_id: str, changes: Mapping[str, Any], owner_id: str
    ) -> OperationResult:
        """
        Update an event's details and/or capacity.

        Reducing total_slots below the confirmed-participant count is
        rejected with the number of participants that must be removed.
        """
        try:
            event = self._load_owned_event(event_id, owner_id, "update")
            details = self._validate_details(changes)

            if changes.get("total_slots") is not None:
                total_slots = parse_total_slots(changes["total_slots"])
                if total_slots != event.total_slots:
                    event = self._resize(event, total_slots)

            if details:
                updated = self.repository.update_details(event_id, details)
                if updated is None:
                    raise NotFoundError("Event not found")
                event = updated
        except RegistrationError as error:
            return OperationResult.fail(error)

        logger.info("Event %s updated by organizer %s", event_id, owner_id)
        return OperationResult.ok(data=event.to_dict())

    def delete_event(self, event_id: str, owner_id: str) -> OperationResult:
        try:
            event = self._load_owned_event(event_id, owner_id, "delete")
            confirmed = event.confirmed_count()
            if confirmed > 0:
                raise ValidationError(
                    f"Cannot delete event with {confirmed} confirmed participant(s)"
                )
            if not self.repository.delete(event_id):
                raise RaceLostError("Failed to delete event")
        except RegistrationError as error:
            return OperationResult.fail(error)

        logger.info("Event %s deleted by organizer %s", event_id, owner_id)
        return OperationResult.ok(data={"message": "Event deleted successfully"})

    def list_participants(self, event_id: str, owner_id: str) -> OperationResult:
        """Confirmed participants of an event, in registration order."""
        try:
            event = self._load_owned_event(event_id, owner_id, "view participants of")
        except RegistrationError as error:
            return OperationResult.fail(error)

        participants = [
            p.to_dict() for p in event.participants if p.status is RegistrationStatus.CONFIRMED
        ]
        return OperationResult.ok(data=participants)

    def _load_owned_event(self, event_id: str, owner_id: str, action: str) -> Event:
        if not event_id:
            raise ValidationError("Event ID is required")
        event = self.repository.find_by_id(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if event.owner_id != owner_id:
            raise ForbiddenError(f"You do not have permission to {action} this event")
        return event

    def _resize(self, event: Event, total_slots: int) -> Event:
        confirmed = event.confirmed_count()
        if total_slots < confirmed:
            raise ValidationError(self._reduction_message(total_slots, confirmed))

        resized = self.repository.resize(event.id, total_slots)
        if resized is None:
            # Confirmations may have landed since the event was read
            current = self.repository.find_by_id(event.id)
            if current is None:
                raise NotFoundError("Event not found")
            raise ValidationError(self._reduction_message(total_slots, current.confirmed_count()))
        return resized

    @staticmethod
    def _reduction_message(total_slots: int, confirmed: int) -> str:
        return (
            f"Cannot reduce total slots to {total_slots}. "
            f"There are {confirmed} confirmed participants. "
            f"Please remove {confirmed - total_slots} participant(s) first."
        )

    @staticmethod
    def _validate_details(changes: Mapping[str, Any]) -> dict[str, Any]:
        details: dict[str, Any] = {}
        for key in DETAIL_FIELDS:
            if key not in changes or changes[key] is None:
                continue
            value = changes[key]
            if key in ("title", "description"):
                if not str(value).strip():
                    raise ValidationError(f"{key.capitalize()} is required")
                value = str(value).strip()
            elif key == "date_time":
                value = parse_date_time(value)
            elif key == "is_active":
                value = bool(value)
            details[key] = value
        return details

    def _generate_unique_event_code(self) -> str:
        for _ in range(EVENT_CODE_MAX_ATTEMPTS):
            code = "".join(secrets.choice(EVENT_CODE_ALPHABET) for _ in range(EVENT_CODE_LENGTH))
            if self.repository.find_by_event_code(code) is None:
                return code
        raise ValidationError("Failed to generate unique event code. Please try again.")
