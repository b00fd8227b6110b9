"""
Shared fixtures for integration tests.

Provides a client for the full application running on the in-memory
backend, and a PostgreSQL pool for repository tests (skipped when the
database is unreachable).
"""

from collections.abc import Generator
from unittest.mock import Mock

import psycopg
import pytest
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from src.adapters.repository import run_migrations
from src.api.main import app
from src.config.settings import get_settings
from src.domain.notifications import NotificationDispatcher
from tests.helpers import ORGANIZER_EMAIL, ORGANIZER_PASSWORD


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch, notifier: Mock
) -> Generator[TestClient, None, None]:
    """
    Full application on the in-memory backend with a bootstrap organizer.

    Notifications are dispatched inline to a Mock so tests can read the
    verification codes.
    """
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("BCRYPT_COST", "4")
    monkeypatch.setenv("BOOTSTRAP_ORGANIZER_EMAIL", ORGANIZER_EMAIL)
    monkeypatch.setenv("BOOTSTRAP_ORGANIZER_PASSWORD", ORGANIZER_PASSWORD)
    get_settings.cache_clear()

    with TestClient(app) as test_client:
        app.state.dispatcher = NotificationDispatcher(notifier)
        yield test_client

    get_settings.cache_clear()


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests, or skip without a database."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError:
        pytest.skip("PostgreSQL is not reachable")

    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty the event tables before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM participants")
        conn.execute("DELETE FROM events")
        conn.commit()
    yield
