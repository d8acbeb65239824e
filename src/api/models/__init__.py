"""API Pydantic models."""

from .responses import (
    AnalyzeResponse,
    ErrorCodes,
    ErrorResponse,
    EventModel,
    HealthResponse,
    SaveEventResponse,
    ScheduleRequest,
    ScheduleResponse,
    TransmitResponse,
)

__all__ = [
    "AnalyzeResponse",
    "ErrorCodes",
    "ErrorResponse",
    "EventModel",
    "HealthResponse",
    "SaveEventResponse",
    "ScheduleRequest",
    "ScheduleResponse",
    "TransmitResponse",
]
