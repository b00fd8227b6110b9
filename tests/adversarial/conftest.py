"""
Shared fixtures for adversarial tests.

Race tests run against every repository backend: the in-memory
repository always, PostgreSQL when it is reachable.
"""

from collections.abc import Generator
from unittest.mock import Mock

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository import (
    InMemoryEventRepository,
    PostgresEventRepository,
    run_migrations,
)
from src.config.settings import get_settings
from src.domain.notifications import NotificationDispatcher
from src.domain.ports import EventRepository
from src.domain.registration import RegistrationService

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for adversarial tests, or skip without a database."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError:
        pytest.skip("PostgreSQL is not reachable")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=20,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(params=["memory", "postgres"])
def repository(request: pytest.FixtureRequest) -> EventRepository:
    """Every repository backend; PostgreSQL tables are emptied first."""
    if request.param == "memory":
        return InMemoryEventRepository()

    pool = request.getfixturevalue("pool")
    with pool.connection() as conn:
        conn.execute("DELETE FROM participants")
        conn.execute("DELETE FROM events")
        conn.commit()
    return PostgresEventRepository(pool)


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def registration_service(repository: EventRepository, notifier: Mock) -> RegistrationService:
    return RegistrationService(repository=repository, dispatcher=NotificationDispatcher(notifier))
