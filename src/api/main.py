"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import logging
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.identity import InMemoryOrganizerDirectory, PostgresOrganizerDirectory
from src.adapters.notifier import ConsoleNotifier
from src.adapters.repository import (
    InMemoryEventRepository,
    PostgresEventRepository,
    run_migrations,
)
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Event Registration API v1 - Manage events and register participants",
    },
]


def _open_storage(app: FastAPI, settings: Settings) -> None:
    """Create the repository and organizer directory for the configured backend."""
    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage")
        app.state.pool = None
        app.state.repository = InMemoryEventRepository()
        app.state.organizers = InMemoryOrganizerDirectory(bcrypt_cost=settings.bcrypt_cost)
        return

    logger.info("Connecting to database...")

    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    logger.info("Running database migrations...")
    run_migrations(pool)

    app.state.pool = pool
    app.state.repository = PostgresEventRepository(pool)
    app.state.organizers = PostgresOrganizerDirectory(pool, bcrypt_cost=settings.bcrypt_cost)


def _bootstrap_organizer(app: FastAPI, settings: Settings) -> None:
    if not settings.bootstrap_organizer_email or not settings.bootstrap_organizer_password:
        return
    organizer_id = app.state.organizers.create_organizer(
        settings.bootstrap_organizer_email,
        settings.bootstrap_organizer_name,
        settings.bootstrap_organizer_password,
    )
    if organizer_id is None:
        logger.info("Bootstrap organizer already exists")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Opens storage (connection pool + migrations, or in-memory)
    - Starts the notification thread pool
    - Closes both on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    _open_storage(app, settings)
    _bootstrap_organizer(app, settings)

    executor = ThreadPoolExecutor(
        max_workers=settings.notification_workers,
        thread_name_prefix="notifier",
    )
    app.state.notifier = ConsoleNotifier(settings.locale_date_format)
    app.state.dispatcher = NotificationDispatcher(app.state.notifier, executor)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    executor.shutdown(wait=True)
    logger.info("Notification workers stopped")
    if app.state.pool is not None:
        app.state.pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="eventslots",
    description="Event Registration API - Capacity-safe registration, verification and cancellation",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.middleware("http")
async def request_id_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag every request with a correlation id, echoed in X-Request-ID."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler for unexpected errors (store unreachable, bugs).

    Business rule failures never reach this point; they are returned
    by the use cases as OperationResult.
    """
    request_id = getattr(request.state, "request_id", None) or uuid.uuid4().hex
    logger.error(
        "Unhandled error on %s %s [request_id=%s]",
        request.method,
        request.url.path,
        request_id,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "request_id": request_id},
        headers={REQUEST_ID_HEADER: request_id},
    )


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint.

    With the postgres backend a SELECT 1 round-trip validates the pool;
    a failure surfaces as a 500 through the generic handler.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
