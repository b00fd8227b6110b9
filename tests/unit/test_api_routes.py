"""
Unit tests for API v1 routes.

Tests endpoint responses with mocked dependencies.
"""

from base64 import b64encode
from collections.abc import Generator
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_event_service,
    get_organizer_directory,
    get_registration_service,
    get_reminder_service,
)
from src.api.v1.routes import router
from src.domain.events import EventService
from src.domain.exceptions import (
    CapacityExhausted,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from src.domain.registration import RegistrationService
from src.domain.reminders import ReminderService
from src.domain.results import OperationResult

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

EVENT = {
    "id": "evt-1",
    "title": "Meetup",
    "description": "Monthly meetup",
    "date_time": datetime(2030, 2, 1, 18, 0, tzinfo=timezone.utc),
    "total_slots": 10,
    "available_slots": 10,
    "owner_id": "org-1",
    "local": None,
    "is_active": True,
    "event_code": "AB12C",
    "created_at": NOW,
}

PARTICIPANT = {
    "id": "p-1",
    "event_id": "evt-1",
    "name": "Ana",
    "email": "ana@example.com",
    "phone": "+5511999990000",
    "status": "pending",
    "verification_code_expires_at": NOW,
    "registered_at": NOW,
    "confirmed_at": None,
    "verified_at": None,
}

REGISTRATION_BODY = {"name": "Ana", "email": "ana@example.com", "phone": "+5511999990000"}


def basic_auth_header(email: str, password: str) -> dict:
    """Create HTTP BASIC AUTH header for testing."""
    credentials = f"{email}:{password}"
    encoded = b64encode(credentials.encode()).decode()
    return {"Authorization": f"Basic {encoded}"}


ORGANIZER_AUTH = basic_auth_header("org@example.com", "s3cret")


@pytest.fixture
def directory() -> MagicMock:
    """Organizer directory accepting only org@example.com / s3cret."""
    mock = MagicMock()
    mock.authenticate.side_effect = lambda email, password: (
        "org-1" if (email, password) == ("org@example.com", "s3cret") else None
    )
    return mock


@pytest.fixture
def registration_service() -> MagicMock:
    return MagicMock(spec=RegistrationService)


@pytest.fixture
def event_service() -> MagicMock:
    return MagicMock(spec=EventService)


@pytest.fixture
def reminder_service() -> MagicMock:
    return MagicMock(spec=ReminderService)


@pytest.fixture
def app(
    directory: MagicMock,
    registration_service: MagicMock,
    event_service: MagicMock,
    reminder_service: MagicMock,
) -> Generator[FastAPI, None, None]:
    """Create test FastAPI application with mocked services."""
    test_app = FastAPI()
    test_app.include_router(router, prefix="/v1")
    test_app.dependency_overrides[get_organizer_directory] = lambda: directory
    test_app.dependency_overrides[get_registration_service] = lambda: registration_service
    test_app.dependency_overrides[get_event_service] = lambda: event_service
    test_app.dependency_overrides[get_reminder_service] = lambda: reminder_service
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client for the application."""
    return TestClient(app)


class TestRegisterEndpoint:
    """Tests for POST /v1/events/{event_id}/registrations."""

    def test_anonymous_registration_returns_201(
        self, client: TestClient, registration_service: MagicMock
    ) -> None:
        registration_service.register.return_value = OperationResult.ok(
            data=PARTICIPANT, message="Registration pending. A verification code has been sent."
        )

        response = client.post("/v1/events/evt-1/registrations", json=REGISTRATION_BODY)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Registration pending. A verification code has been sent."
        assert body["registration"]["status"] == "pending"
        assert "verification_code" not in body["registration"]
        registration_service.register.assert_called_once_with(
            {"event_id": "evt-1", **REGISTRATION_BODY}, is_authenticated=False
        )

    def test_organizer_registration_is_authenticated(
        self, client: TestClient, registration_service: MagicMock
    ) -> None:
        registration_service.register.return_value = OperationResult.ok(
            data={**PARTICIPANT, "status": "confirmed"},
            message="Registration confirmed successfully",
        )

        response = client.post(
            "/v1/events/evt-1/registrations", json=REGISTRATION_BODY, headers=ORGANIZER_AUTH
        )

        assert response.status_code == 201
        assert registration_service.register.call_args.kwargs == {"is_authenticated": True}

    def test_wrong_credentials_are_not_treated_as_anonymous(
        self, client: TestClient, registration_service: MagicMock
    ) -> None:
        response = client.post(
            "/v1/events/evt-1/registrations",
            json=REGISTRATION_BODY,
            headers=basic_auth_header("org@example.com", "wrong"),
        )

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Basic"
        registration_service.register.assert_not_called()

    def test_duplicate_returns_400(self, client: TestClient, registration_service: MagicMock) -> None:
        registration_service.register.return_value = OperationResult.fail(
            ConflictError("You are already registered for this event")
        )

        response = client.post("/v1/events/evt-1/registrations", json=REGISTRATION_BODY)

        assert response.status_code == 400
        assert response.json() == {"detail": "You are already registered for this event"}

    def test_unknown_event_returns_404(
        self, client: TestClient, registration_service: MagicMock
    ) -> None:
        registration_service.register.return_value = OperationResult.fail(
            NotFoundError("Event not found")
        )

        response = client.post("/v1/events/evt-1/registrations", json=REGISTRATION_BODY)

        assert response.status_code == 404
        assert response.json() == {"detail": "Event not found"}

    def test_invalid_email_returns_422(self, client: TestClient) -> None:
        response = client.post(
            "/v1/events/evt-1/registrations", json={**REGISTRATION_BODY, "email": "nope"}
        )
        assert response.status_code == 422


class TestVerifyEndpoint:
    def test_verify_success(self, client: TestClient, registration_service: MagicMock) -> None:
        registration_service.verify.return_value = OperationResult.ok(
            message="Registration confirmed successfully"
        )

        response = client.post(
            "/v1/events/evt-1/registrations/p-1/verify", json={"code": "123456"}
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Registration confirmed successfully"}
        registration_service.verify.assert_called_once_with("evt-1", "p-1", "123456")

    def test_full_event_returns_400(
        self, client: TestClient, registration_service: MagicMock
    ) -> None:
        registration_service.verify.return_value = OperationResult.fail(CapacityExhausted())

        response = client.post(
            "/v1/events/evt-1/registrations/p-1/verify", json={"code": "123456"}
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "No available slots for this event"}

    def test_malformed_code_returns_422(
        self, client: TestClient, registration_service: MagicMock
    ) -> None:
        response = client.post("/v1/events/evt-1/registrations/p-1/verify", json={"code": "12"})

        assert response.status_code == 422
        registration_service.verify.assert_not_called()


class TestCancelEndpoint:
    def test_cancel_success(self, client: TestClient, registration_service: MagicMock) -> None:
        registration_service.cancel.return_value = OperationResult.ok(
            message="Registration cancelled successfully"
        )

        response = client.post("/v1/events/evt-1/registrations/p-1/cancel")

        assert response.status_code == 200
        assert response.json() == {"message": "Registration cancelled successfully"}

    def test_second_cancel_returns_404(
        self, client: TestClient, registration_service: MagicMock
    ) -> None:
        registration_service.cancel.return_value = OperationResult.fail(
            NotFoundError("Active registration not found")
        )

        response = client.post("/v1/events/evt-1/registrations/p-1/cancel")

        assert response.status_code == 404


class TestEventEndpoints:
    def test_list_events_is_public(self, client: TestClient, event_service: MagicMock) -> None:
        event_service.list_events.return_value = OperationResult.ok(data=[EVENT])

        response = client.get("/v1/events")

        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == ["evt-1"]
        event_service.list_events.assert_called_once_with()

    def test_my_events_uses_organizer_id(
        self, client: TestClient, event_service: MagicMock
    ) -> None:
        event_service.list_events.return_value = OperationResult.ok(data=[])

        response = client.get("/v1/me/events", headers=ORGANIZER_AUTH)

        assert response.status_code == 200
        event_service.list_events.assert_called_once_with(owner_id="org-1")

    def test_create_requires_auth(self, client: TestClient, event_service: MagicMock) -> None:
        response = client.post(
            "/v1/events",
            json={
                "title": "Meetup",
                "description": "d",
                "date_time": "2030-02-01T18:00:00Z",
                "total_slots": 10,
            },
        )

        assert response.status_code == 401
        event_service.create_event.assert_not_called()

    def test_create_event(self, client: TestClient, event_service: MagicMock) -> None:
        event_service.create_event.return_value = OperationResult.ok(data=EVENT)

        response = client.post(
            "/v1/events",
            json={
                "title": "Meetup",
                "description": "Monthly meetup",
                "date_time": "2030-02-01T18:00:00Z",
                "total_slots": 10,
            },
            headers=ORGANIZER_AUTH,
        )

        assert response.status_code == 201
        assert response.json()["available_slots"] == 10
        assert event_service.create_event.call_args.args[1] == "org-1"

    def test_get_event_not_found(self, client: TestClient, event_service: MagicMock) -> None:
        event_service.get_event.return_value = OperationResult.fail(NotFoundError("Event not found"))

        response = client.get("/v1/events/missing")

        assert response.status_code == 404

    def test_update_forwards_only_set_fields(
        self, client: TestClient, event_service: MagicMock
    ) -> None:
        event_service.update_event.return_value = OperationResult.ok(
            data={**EVENT, "total_slots": 12, "available_slots": 12}
        )

        response = client.patch(
            "/v1/events/evt-1", json={"total_slots": 12}, headers=ORGANIZER_AUTH
        )

        assert response.status_code == 200
        event_service.update_event.assert_called_once_with("evt-1", {"total_slots": 12}, "org-1")

    def test_update_by_other_organizer_returns_403(
        self, client: TestClient, event_service: MagicMock
    ) -> None:
        event_service.update_event.return_value = OperationResult.fail(
            ForbiddenError("You do not have permission to update this event")
        )

        response = client.patch("/v1/events/evt-1", json={"title": "x"}, headers=ORGANIZER_AUTH)

        assert response.status_code == 403

    def test_delete_returns_204(self, client: TestClient, event_service: MagicMock) -> None:
        event_service.delete_event.return_value = OperationResult.ok(
            data={"message": "Event deleted successfully"}
        )

        response = client.delete("/v1/events/evt-1", headers=ORGANIZER_AUTH)

        assert response.status_code == 204
        assert response.content == b""

    def test_list_participants(self, client: TestClient, event_service: MagicMock) -> None:
        event_service.list_participants.return_value = OperationResult.ok(
            data=[{**PARTICIPANT, "status": "confirmed"}]
        )

        response = client.get("/v1/events/evt-1/participants", headers=ORGANIZER_AUTH)

        assert response.status_code == 200
        assert response.json()[0]["email"] == "ana@example.com"


class TestRemindersEndpoint:
    def test_requires_auth(self, client: TestClient, reminder_service: MagicMock) -> None:
        response = client.post("/v1/reminders", json={})

        assert response.status_code == 401
        reminder_service.send_reminders.assert_not_called()

    def test_send_reminders(self, client: TestClient, reminder_service: MagicMock) -> None:
        reminder_service.send_reminders.return_value = OperationResult.ok(
            data={"events_processed": 0, "messages_sent": 0, "messages_failed": 0, "details": []},
            message="No upcoming events found",
        )

        response = client.post("/v1/reminders", json={"hours_ahead": 2}, headers=ORGANIZER_AUTH)

        assert response.status_code == 200
        assert response.json()["message"] == "No upcoming events found"
        reminder_service.send_reminders.assert_called_once_with(2)
