"""Test helpers shared across unit, integration and adversarial suites."""

from datetime import datetime, timedelta, timezone

from src.domain.event import Event
from src.domain.ports import EventRepository

OWNER_ID = "organizer-1"
ORGANIZER_EMAIL = "organizer@example.com"
ORGANIZER_PASSWORD = "organizer-secret"
EVENT_DATE = datetime(2030, 2, 1, 18, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_event(repository: EventRepository, total_slots: int = 2, **overrides: object) -> Event:
    """Store an event owned by OWNER_ID and return it."""
    fields = {
        "title": "Workshop",
        "description": "Hands-on session",
        "date_time": EVENT_DATE,
        "total_slots": total_slots,
        "owner_id": OWNER_ID,
        "local": "Main Auditorium",
    }
    fields.update(overrides)
    return repository.create(Event(**fields))


def registration_data(event_id: str, n: int = 1, **overrides: str) -> dict[str, str]:
    """Registration payload with a unique email and phone per n."""
    data = {
        "event_id": event_id,
        "name": f"Participant {n}",
        "email": f"participant{n}@example.com",
        "phone": f"+5511900000{n:03d}",
    }
    data.update(overrides)
    return data
