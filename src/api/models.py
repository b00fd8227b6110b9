"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class EventCreateRequest(BaseModel):
    """Request model for event creation."""

    title: str = Field(..., min_length=1, description="Event title")
    description: str = Field(..., min_length=1, description="Event description")
    date_time: datetime = Field(..., description="Event start (ISO 8601)")
    total_slots: int = Field(..., ge=1, description="Capacity (at least 1)")
    local: str | None = Field(None, description="Event location")


class EventUpdateRequest(BaseModel):
    """Request model for event update. Only provided fields change."""

    title: str | None = None
    description: str | None = None
    date_time: datetime | None = None
    total_slots: int | None = Field(
        None, description="New capacity; cannot go below the confirmed-participant count"
    )
    local: str | None = None
    is_active: bool | None = None


class EventResponse(BaseModel):
    """Response model for an event."""

    id: str
    title: str
    description: str
    date_time: datetime
    total_slots: int
    available_slots: int
    owner_id: str | None = None
    local: str | None = None
    is_active: bool
    event_code: str | None = None
    created_at: datetime


class RegistrationRequest(BaseModel):
    """Request model for event registration."""

    name: str = Field(..., min_length=1, description="Participant name")
    email: EmailStr
    phone: str = Field(
        ..., min_length=3, max_length=32, description="Phone number used for notifications"
    )


class ParticipantResponse(BaseModel):
    """Response model for a registration record."""

    id: str
    event_id: str
    name: str
    email: str
    phone: str
    status: str
    verification_code_expires_at: datetime | None = None
    registered_at: datetime
    confirmed_at: datetime | None = None
    verified_at: datetime | None = None


class RegistrationResponse(BaseModel):
    """Response model for successful registration."""

    message: str
    registration: ParticipantResponse


class VerifyRequest(BaseModel):
    """Request model for registration verification."""

    code: str = Field(
        ...,
        min_length=6,
        max_length=6,
        pattern=r"^\d{6}$",
        description="6-digit verification code",
    )


class MessageResponse(BaseModel):
    """Response model for operations that only report an outcome."""

    message: str


class ReminderRequest(BaseModel):
    """Request model for sending event reminders."""

    hours_ahead: float | None = Field(
        None, description="Look-ahead in hours; defaults to the configured value"
    )


class ReminderEventSummary(BaseModel):
    event_id: str
    event_title: str
    participants_count: int
    messages_sent: int
    messages_failed: int


class ReminderResponse(BaseModel):
    """Response model for a reminder run."""

    message: str
    events_processed: int
    messages_sent: int
    messages_failed: int
    details: list[ReminderEventSummary]


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
