"""
Event reminders - Notify confirmed participants of upcoming events.

Finds active events starting inside [now + hours_ahead, now + hours_ahead
+ window) and sends a reminder to each confirmed participant with a phone.
Unlike registration notifications, reminders are sent synchronously so
the caller gets per-event delivery counts.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .event import utcnow
from .exceptions import ValidationError
from .ports import EventRepository, Notifier, RegistrationStatus
from .results import OperationResult

logger = logging.getLogger(__name__)


@dataclass
class ReminderService:
    """Sends reminders for events starting soon."""

    repository: EventRepository
    notifier: Notifier
    window: timedelta = timedelta(hours=1)
    clock: Callable[[], datetime] = field(default=utcnow)

    def send_reminders(self, hours_ahead: float = 24) -> OperationResult:
        if isinstance(hours_ahead, bool) or not isinstance(hours_ahead, (int, float)) or hours_ahead < 0:
            return OperationResult.fail(ValidationError("hours_ahead must be a non-negative number"))

        start = self.clock() + timedelta(hours=hours_ahead)
        events = self.repository.find_upcoming(start, start + self.window)

        if not events:
            return OperationResult.ok(
                data={"events_processed": 0, "messages_sent": 0, "messages_failed": 0, "details": []},
                message="No upcoming events found",
            )

        details = []
        for event in events:
            recipients = [
                p
                for p in event.participants
                if p.status is RegistrationStatus.CONFIRMED and p.phone
            ]
            sent = failed = 0
            for participant in recipients:
                try:
                    self.notifier.send_event_reminder(
                        to=participant.phone,
                        name=participant.name,
                        event_title=event.title,
                        event_date=event.date_time,
                        event_local=event.local,
                    )
                    sent += 1
                except Exception:
                    failed += 1
                    logger.exception(
                        "Reminder failed for participant %s of event %s", participant.id, event.id
                    )
            details.append(
                {
                    "event_id": event.id,
                    "event_title": event.title,
                    "participants_count": len(recipients),
                    "messages_sent": sent,
                    "messages_failed": failed,
                }
            )

        result = {
            "events_processed": len(events),
            "messages_sent": sum(d["messages_sent"] for d in details),
            "messages_failed": sum(d["messages_failed"] for d in details),
            "details": details,
        }
        logger.info(
            "Reminders processed for %d event(s): %d sent, %d failed",
            result["events_processed"],
            result["messages_sent"],
            result["messages_failed"],
        )
        return OperationResult.ok(data=result, message=f"Reminders sent for {len(events)} event(s)")
