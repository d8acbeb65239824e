"""Appointment scheduling endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.dependencies import get_calendar_backend, get_storage_config, verify_api_key
from api.logging import safe_log_request, start_request_log
from api.models.responses import ErrorCodes, ScheduleRequest, ScheduleResponse
from models.registry import StorageConfig
from services.calendar import CalendarBackend
from services.scheduling import SchedulingOrchestrator

router = APIRouter(prefix="/v1")


@router.post("/schedule", response_model=ScheduleResponse)
async def schedule_job(
    request: Request,
    body: ScheduleRequest,
    config: StorageConfig = Depends(get_storage_config),
    backend: CalendarBackend = Depends(get_calendar_backend),
    _api_key: str = Depends(verify_api_key),
):
    """
    Check the technician's calendar for the job and propose a slot if needed.

    The returned job carries the proposed slot in `appointment` when the
    status is "proposed". A calendar failure is reported as status
    "fetch_failed", not as an HTTP error.
    """
    request_log = start_request_log(
        request,
        technician_id=body.technician_id,
        job_reference=body.job.reference_code,
    )

    orchestrator = None
    try:
        if body.technician_id and config.find_technician(body.technician_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "error": f"Unknown technician '{body.technician_id}'",
                    "code": ErrorCodes.TECHNICIAN_NOT_FOUND,
                    "details": [],
                },
            )

        orchestrator = SchedulingOrchestrator(backend, config)
        orchestrator.update_job(body.job)
        await orchestrator.select_technician(body.technician_id)
        state = orchestrator.state

        request_log.schedule_status = state.status.value
        if state.error:
            request_log.details.append(("warning", state.error))
        request_log.finish(200)
        return ScheduleResponse.from_state(state, orchestrator.job)

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    finally:
        if orchestrator is not None:
            orchestrator.close()
        safe_log_request(request_log)
