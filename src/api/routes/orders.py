"""Work order analysis and ERP transmission endpoints."""

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

from api.dependencies import get_document_analyzer, get_storage_config, verify_api_key
from api.logging import safe_log_request, start_request_log
from api.models.responses import AnalyzeResponse, ErrorCodes, TransmitResponse
from core.config import MAX_UPLOAD_SIZE_BYTES, SUPPORTED_MIME_TYPES
from core.matching import match_client
from models.events import Attachment
from models.registry import JobRecord, StorageConfig
from services.extraction import (
    DocumentAnalyzer,
    ExtractionError,
    ExtractionQuotaError,
    MalformedExtractionError,
)
from services.webhook import WebhookError, transmit

router = APIRouter(prefix="/v1")


async def read_document(file: UploadFile) -> Attachment:
    """Read an uploaded work order, enforcing type and size limits."""
    if not file or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "No file provided",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [],
            },
        )

    content_type = file.content_type or ""
    if content_type not in SUPPORTED_MIME_TYPES and not file.filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail={
                "error": "File is not a PDF document",
                "code": ErrorCodes.UNSUPPORTED_MEDIA_TYPE,
                "details": [f"Received: {file.filename} ({content_type or 'unknown type'})"],
            },
        )

    content = await file.read()
    if len(content) > MAX_UPLOAD_SIZE_BYTES:
        max_mb = MAX_UPLOAD_SIZE_BYTES // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "error": f"File exceeds maximum size of {max_mb} MB",
                "code": ErrorCodes.FILE_TOO_LARGE,
                "details": [f"File size: {len(content) / (1024*1024):.1f} MB"],
            },
        )

    return Attachment(name=file.filename, content=content, content_type="application/pdf")


def parse_job_form(job_json: str) -> JobRecord:
    try:
        return JobRecord.model_validate_json(job_json)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "Invalid job record",
                "code": ErrorCodes.VALIDATION_ERROR,
                "details": [err["msg"] for err in e.errors()],
            },
        )


@router.post("/orders/analyze", response_model=AnalyzeResponse)
async def analyze_order(
    request: Request,
    file: Annotated[UploadFile, File(description="Scanned work order (PDF)")],
    analyzer: DocumentAnalyzer = Depends(get_document_analyzer),
    config: StorageConfig = Depends(get_storage_config),
    _api_key: str = Depends(verify_api_key),
):
    """Extract the job fields of a work order and map its client."""
    request_log = start_request_log(request, file_name=file.filename)

    try:
        document = await read_document(file)
        request_log.file_size_bytes = len(document.content)

        try:
            job = await analyzer.analyze(document.content, document.content_type)
        except ExtractionQuotaError as e:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"error": str(e), "code": ErrorCodes.QUOTA_EXCEEDED, "details": []},
            )
        except MalformedExtractionError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={"error": str(e), "code": ErrorCodes.EXTRACTION_FAILED, "details": []},
            )
        except ExtractionError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"error": str(e), "code": ErrorCodes.EXTRACTION_FAILED, "details": []},
            )

        client = match_client(job.client_name, config.clients)
        request_log.job_reference = job.reference_code
        if client is None:
            request_log.details.append(("warning", f"No registry client for '{job.client_name}'"))

        request_log.finish(200)
        return AnalyzeResponse(job=job, client=client)

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    finally:
        safe_log_request(request_log)


@router.post("/orders/transmit", response_model=TransmitResponse)
async def transmit_order(
    request: Request,
    job: Annotated[str, Form(description="JobRecord as JSON")],
    file: Annotated[UploadFile, File(description="Source work order (PDF)")],
    technician_id: Annotated[str | None, Form()] = None,
    config: StorageConfig = Depends(get_storage_config),
    _api_key: str = Depends(verify_api_key),
):
    """Send the job, the chosen technician and the document to the ERP webhook."""
    request_log = start_request_log(request, file_name=file.filename, technician_id=technician_id)

    try:
        record = parse_job_form(job)
        request_log.job_reference = record.reference_code
        document = await read_document(file)
        request_log.file_size_bytes = len(document.content)

        technician = config.find_technician(technician_id) if technician_id else None
        if technician_id and technician is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "error": f"Unknown technician '{technician_id}'",
                    "code": ErrorCodes.TECHNICIAN_NOT_FOUND,
                    "details": [],
                },
            )

        client = match_client(record.client_name, config.clients)
        if client is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={
                    "error": "Client is not mapped to the ERP registry",
                    "code": ErrorCodes.VALIDATION_ERROR,
                    "details": [f"Client name: {record.client_name or '(empty)'}"],
                },
            )

        try:
            reply = await transmit(config.webhook_url, record, technician, client, document)
        except WebhookError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"error": str(e), "code": ErrorCodes.WEBHOOK_FAILED, "details": []},
            )

        request_log.finish(200)
        return TransmitResponse(
            status_code=reply.status_code,
            reference=reply.reference,
            reply=reply.payload,
        )

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    finally:
        safe_log_request(request_log)
