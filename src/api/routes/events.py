"""Calendar event persistence endpoint."""

from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from pydantic import ValidationError

from api.dependencies import get_calendar_backend, get_storage_config, verify_api_key
from api.logging import safe_log_request, start_request_log
from api.models.responses import ErrorCodes, EventModel, SaveEventResponse
from api.routes.orders import read_document
from models.registry import StorageConfig
from services.calendar import CalendarBackend
from services.editor import EventEditor, SaveInProgressError

router = APIRouter(prefix="/v1")

# Edit sessions with a save in flight, one per (technician, event)
_sessions: dict[tuple[str, str], EventEditor] = {}


def session_key(technician_id: str, event: EventModel) -> tuple[str, str]:
    if event.is_tentative:
        # Proposals share the sentinel id; their slot identifies them
        return technician_id, f"{event.id}@{event.start.isoformat()}"
    return technician_id, event.id


@router.post("/events", response_model=SaveEventResponse)
async def save_event(
    request: Request,
    technician_id: Annotated[str, Form()],
    event: Annotated[str, Form(description="Event as JSON")],
    file: Annotated[UploadFile | None, File(description="Source work order (PDF)")] = None,
    config: StorageConfig = Depends(get_storage_config),
    backend: CalendarBackend = Depends(get_calendar_backend),
    _api_key: str = Depends(verify_api_key),
):
    """
    Create a proposed event or update an existing one.

    The source document is attached only when a proposal is created.
    """
    request_log = start_request_log(request, technician_id=technician_id)

    try:
        try:
            event_model = EventModel.model_validate_json(event)
            calendar_event = event_model.to_event()
        except (ValidationError, ValueError) as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={
                    "error": "Invalid event",
                    "code": ErrorCodes.VALIDATION_ERROR,
                    "details": [str(e)],
                },
            )

        technician = config.find_technician(technician_id)
        if technician is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "error": f"Unknown technician '{technician_id}'",
                    "code": ErrorCodes.TECHNICIAN_NOT_FOUND,
                    "details": [],
                },
            )

        attachment = None
        if file is not None and file.filename:
            attachment = await read_document(file)
            request_log.file_name = attachment.name
            request_log.file_size_bytes = len(attachment.content)

        key = session_key(technician_id, event_model)
        editor = _sessions.get(key)
        if editor is None:
            editor = EventEditor(backend, technician_id)
            _sessions[key] = editor
        if editor.is_saving:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "error": "This event is already being saved",
                    "code": ErrorCodes.SAVE_IN_PROGRESS,
                    "details": [],
                },
            )

        editor.open(calendar_event)
        try:
            saved = await editor.save(attachment)
        except SaveInProgressError as e:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"error": str(e), "code": ErrorCodes.SAVE_IN_PROGRESS, "details": []},
            )
        finally:
            # Sessions only live while a save is running
            if not editor.is_saving:
                _sessions.pop(key, None)

        if not saved:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={
                    "error": "Calendar rejected the event",
                    "code": ErrorCodes.CALENDAR_ERROR,
                    "details": [editor.error or ""],
                },
            )

        if editor.warning:
            request_log.details.append(("warning", editor.warning))
        request_log.finish(200)
        return SaveEventResponse(success=True, event_id=editor.saved_event_id, warning=editor.warning)

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    finally:
        safe_log_request(request_log)
