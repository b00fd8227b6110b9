"""
API v1 routes.

Defines REST endpoints for events, registrations and reminders.
Use cases return OperationResult; failures are translated here into
HTTP errors (404 not found, 403 forbidden, 400 for every other
business rule failure).
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.api.dependencies import (
    get_current_organizer,
    get_event_service,
    get_optional_organizer,
    get_registration_service,
    get_reminder_service,
)
from src.api.models import (
    ErrorResponse,
    EventCreateRequest,
    EventResponse,
    EventUpdateRequest,
    MessageResponse,
    ParticipantResponse,
    RegistrationRequest,
    RegistrationResponse,
    ReminderRequest,
    ReminderResponse,
    VerifyRequest,
)
from src.config.settings import get_settings
from src.domain.events import EventService
from src.domain.exceptions import ErrorKind
from src.domain.registration import RegistrationService
from src.domain.reminders import ReminderService
from src.domain.results import OperationResult

router = APIRouter(tags=["v1"])

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Business rule violation"},
    404: {"model": ErrorResponse, "description": "Event or registration not found"},
    422: {"description": "Validation error"},
}

_ORGANIZER_RESPONSES = {
    **_ERROR_RESPONSES,
    401: {"model": ErrorResponse, "description": "Missing or invalid organizer credentials"},
    403: {"model": ErrorResponse, "description": "Caller does not own the event"},
}


def _unwrap(result: OperationResult) -> OperationResult:
    """Return a successful result or raise the matching HTTPException."""
    if result.success:
        return result
    raise HTTPException(
        status_code=_STATUS_BY_KIND.get(result.kind, status.HTTP_400_BAD_REQUEST),
        detail=result.error,
    )


@router.get(
    "/events",
    response_model=list[EventResponse],
    summary="List active events",
)
def list_events(
    service: EventService = Depends(get_event_service),
) -> list[EventResponse]:
    result = _unwrap(service.list_events())
    return [EventResponse(**event) for event in result.data]


@router.get(
    "/me/events",
    response_model=list[EventResponse],
    responses=_ORGANIZER_RESPONSES,
    summary="List the organizer's events",
)
def list_my_events(
    organizer_id: str = Depends(get_current_organizer),
    service: EventService = Depends(get_event_service),
) -> list[EventResponse]:
    result = _unwrap(service.list_events(owner_id=organizer_id))
    return [EventResponse(**event) for event in result.data]


@router.post(
    "/events",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ORGANIZER_RESPONSES,
    summary="Create an event",
    description="Create an event owned by the authenticated organizer. "
    "All slots start available.",
)
def create_event(
    request_data: EventCreateRequest,
    organizer_id: str = Depends(get_current_organizer),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    result = _unwrap(service.create_event(request_data.model_dump(), organizer_id))
    return EventResponse(**result.data)


@router.get(
    "/events/{event_id}",
    response_model=EventResponse,
    responses=_ERROR_RESPONSES,
    summary="Get event details",
)
def get_event(
    event_id: str,
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    result = _unwrap(service.get_event(event_id))
    return EventResponse(**result.data)


@router.patch(
    "/events/{event_id}",
    response_model=EventResponse,
    responses=_ORGANIZER_RESPONSES,
    summary="Update an event",
    description="Update event details or capacity. Capacity cannot be reduced "
    "below the number of confirmed participants.",
)
def update_event(
    event_id: str,
    request_data: EventUpdateRequest,
    organizer_id: str = Depends(get_current_organizer),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    changes = request_data.model_dump(exclude_unset=True)
    result = _unwrap(service.update_event(event_id, changes, organizer_id))
    return EventResponse(**result.data)


@router.delete(
    "/events/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ORGANIZER_RESPONSES,
    summary="Delete an event",
    description="Delete an event that has no confirmed participants.",
)
def delete_event(
    event_id: str,
    organizer_id: str = Depends(get_current_organizer),
    service: EventService = Depends(get_event_service),
) -> Response:
    _unwrap(service.delete_event(event_id, organizer_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/events/{event_id}/participants",
    response_model=list[ParticipantResponse],
    responses=_ORGANIZER_RESPONSES,
    summary="List confirmed participants",
)
def list_participants(
    event_id: str,
    organizer_id: str = Depends(get_current_organizer),
    service: EventService = Depends(get_event_service),
) -> list[ParticipantResponse]:
    result = _unwrap(service.list_participants(event_id, organizer_id))
    return [ParticipantResponse(**participant) for participant in result.data]


@router.post(
    "/events/{event_id}/registrations",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ORGANIZER_RESPONSES,
    summary="Register for an event",
    description="Anonymous callers get a pending registration and a 6-digit "
    "verification code sent to their phone. Organizers (HTTP BASIC AUTH) "
    "register participants as confirmed immediately.",
)
def register(
    event_id: str,
    request_data: RegistrationRequest,
    organizer_id: str | None = Depends(get_optional_organizer),
    service: RegistrationService = Depends(get_registration_service),
) -> RegistrationResponse:
    data = {"event_id": event_id, **request_data.model_dump()}
    result = _unwrap(service.register(data, is_authenticated=organizer_id is not None))
    return RegistrationResponse(
        message=result.message,
        registration=ParticipantResponse(**result.data),
    )


@router.post(
    "/events/{event_id}/registrations/{participant_id}/verify",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Verify a pending registration",
    description="Confirm a pending registration with its 6-digit code. "
    "Fails if the code expired or the event filled up in the meantime.",
)
def verify(
    event_id: str,
    participant_id: str,
    request_data: VerifyRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    result = _unwrap(service.verify(event_id, participant_id, request_data.code))
    return MessageResponse(message=result.message)


@router.post(
    "/events/{event_id}/registrations/{participant_id}/cancel",
    response_model=MessageResponse,
    responses=_ERROR_RESPONSES,
    summary="Cancel a registration",
)
def cancel(
    event_id: str,
    participant_id: str,
    service: RegistrationService = Depends(get_registration_service),
) -> MessageResponse:
    result = _unwrap(service.cancel(event_id, participant_id))
    return MessageResponse(message=result.message)


@router.post(
    "/reminders",
    response_model=ReminderResponse,
    responses=_ORGANIZER_RESPONSES,
    dependencies=[Depends(get_current_organizer)],
    summary="Send reminders for upcoming events",
)
def send_reminders(
    request_data: ReminderRequest,
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderResponse:
    hours_ahead = request_data.hours_ahead
    if hours_ahead is None:
        hours_ahead = get_settings().reminder_hours_ahead
    result = _unwrap(service.send_reminders(hours_ahead))
    return ReminderResponse(message=result.message, **result.data)
