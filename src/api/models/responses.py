"""Pydantic request/response models for API endpoints."""

from datetime import datetime

from pydantic import BaseModel

from models.events import CalendarEvent
from models.registry import Client, JobRecord
from services.scheduling import ScheduleState


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    config_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    TECHNICIAN_NOT_FOUND = "TECHNICIAN_NOT_FOUND"
    CALENDAR_ERROR = "CALENDAR_ERROR"
    SAVE_IN_PROGRESS = "SAVE_IN_PROGRESS"
    WEBHOOK_FAILED = "WEBHOOK_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class EventModel(BaseModel):
    """Calendar event as exchanged over the API."""

    id: str
    title: str
    start: datetime
    end: datetime
    location: str = ""
    description: str = ""
    is_tentative: bool = False

    @classmethod
    def from_event(cls, event: CalendarEvent) -> "EventModel":
        return cls(
            id=event.id,
            title=event.title,
            start=event.start,
            end=event.end,
            location=event.location,
            description=event.description,
            is_tentative=event.is_tentative,
        )

    def to_event(self) -> CalendarEvent:
        return CalendarEvent(
            id=self.id,
            title=self.title,
            start=self.start,
            end=self.end,
            location=self.location,
            description=self.description,
            is_tentative=self.is_tentative,
        )


class AnalyzeResponse(BaseModel):
    """Extracted job and the registry client it maps to."""

    job: JobRecord
    client: Client | None = None


class ScheduleRequest(BaseModel):
    technician_id: str | None = None
    job: JobRecord


class ScheduleResponse(BaseModel):
    status: str
    confirmed: bool
    appointment: str | None = None
    tentative: EventModel | None = None
    booking: EventModel | None = None
    error: str | None = None
    events: list[EventModel] = []
    job: JobRecord

    @classmethod
    def from_state(cls, state: ScheduleState, job: JobRecord) -> "ScheduleResponse":
        return cls(
            status=state.status.value,
            confirmed=state.confirmed,
            appointment=state.appointment,
            tentative=EventModel.from_event(state.tentative) if state.tentative else None,
            booking=EventModel.from_event(state.booking) if state.booking else None,
            error=state.error,
            events=[EventModel.from_event(e) for e in state.events],
            job=job,
        )


class SaveEventResponse(BaseModel):
    success: bool
    event_id: str | None = None
    warning: str | None = None


class TransmitResponse(BaseModel):
    status_code: int
    reference: str | None = None
    reply: dict = {}
