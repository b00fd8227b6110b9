"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory repository and a controllable clock
- Registration and event services wired with an inline dispatcher
"""

from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryEventRepository
from src.domain.events import EventService
from src.domain.notifications import NotificationDispatcher
from src.domain.registration import RegistrationService
from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository(clock: FakeClock) -> InMemoryEventRepository:
    """Fresh in-memory repository sharing the test clock."""
    return InMemoryEventRepository(clock=clock)


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def registration_service(
    repository: InMemoryEventRepository, notifier: Mock, clock: FakeClock
) -> RegistrationService:
    """Registration service with inline (synchronous) notification dispatch."""
    return RegistrationService(
        repository=repository,
        dispatcher=NotificationDispatcher(notifier),
        clock=clock,
    )


@pytest.fixture
def event_service(repository: InMemoryEventRepository) -> EventService:
    return EventService(repository=repository)
