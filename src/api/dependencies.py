"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from src.config.settings import get_settings
from src.domain.events import EventService
from src.domain.notifications import NotificationDispatcher
from src.domain.ports import EventRepository, Notifier, OrganizerDirectory
from src.domain.registration import RegistrationService
from src.domain.reminders import ReminderService


def get_repository(request: Request) -> EventRepository:
    """
    Get event repository from app state.

    The repository is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.repository


def get_organizer_directory(request: Request) -> OrganizerDirectory:
    """Get organizer directory from app state."""
    return request.app.state.organizers


def get_notifier(request: Request) -> Notifier:
    """Get notifier from app state."""
    return request.app.state.notifier


def get_dispatcher(request: Request) -> NotificationDispatcher:
    """Get the fire-and-forget notification dispatcher from app state."""
    return request.app.state.dispatcher


def get_registration_service(request: Request) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the repository and notification dispatcher.
    """
    settings = get_settings()
    return RegistrationService(
        repository=get_repository(request),
        dispatcher=get_dispatcher(request),
        verification_ttl=timedelta(minutes=settings.verification_ttl_minutes),
    )


def get_event_service(request: Request) -> EventService:
    """Create event service with the repository from app state."""
    return EventService(repository=get_repository(request))


def get_reminder_service(request: Request) -> ReminderService:
    """Create reminder service with the repository and notifier."""
    settings = get_settings()
    return ReminderService(
        repository=get_repository(request),
        notifier=get_notifier(request),
        window=timedelta(minutes=settings.reminder_window_minutes),
    )


# HTTP BASIC AUTH security schemes for OpenAPI documentation
http_basic = HTTPBasic()
optional_http_basic = HTTPBasic(auto_error=False)


def _authenticate(credentials: HTTPBasicCredentials, directory: OrganizerDirectory) -> str:
    organizer_id = directory.authenticate(credentials.username.strip().lower(), credentials.password)
    if organizer_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return organizer_id


def get_current_organizer(
    credentials: HTTPBasicCredentials = Depends(http_basic),
    directory: OrganizerDirectory = Depends(get_organizer_directory),
) -> str:
    """
    Resolve the organizer id from HTTP BASIC AUTH credentials.

    FastAPI's HTTPBasic returns 401 for a missing or malformed
    Authorization header; wrong credentials also return 401.
    """
    return _authenticate(credentials, directory)


def get_optional_organizer(
    credentials: HTTPBasicCredentials | None = Depends(optional_http_basic),
    directory: OrganizerDirectory = Depends(get_organizer_directory),
) -> str | None:
    """
    Resolve the organizer id when credentials are supplied.

    Anonymous callers get None. Supplied but wrong credentials are
    rejected with 401 rather than treated as anonymous.
    """
    if credentials is None:
        return None
    return _authenticate(credentials, directory)
