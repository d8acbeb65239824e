"""SQLite request logging for API."""

import sqlite3
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import HTTPException, Request

from core import config as settings


@dataclass
class RequestLog:
    """Captured request/response data for logging."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    started_at: float = field(default_factory=time.time, repr=False)
    endpoint: str = ""
    method: str = ""
    client_ip: str | None = None
    file_size_bytes: int | None = None
    file_name: str | None = None
    technician_id: str | None = None
    job_reference: str | None = None
    schedule_status: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)

    def finish(self, status_code: int) -> None:
        self.status_code = status_code
        self.processing_time_ms = int((time.time() - self.started_at) * 1000)

    def record_http_error(self, error: HTTPException) -> None:
        """Copy status, code and details of an HTTPException raised by a route."""
        self.finish(error.status_code)
        if isinstance(error.detail, dict):
            self.error_code = error.detail.get("code")
            self.error_message = error.detail.get("error")
            for detail in error.detail.get("details", []):
                self.details.append(("validation_error", detail))
        else:
            self.error_message = str(error.detail)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def start_request_log(request: Request, **fields) -> RequestLog:
    return RequestLog(
        endpoint=request.url.path,
        method=request.method,
        client_ip=get_client_ip(request),
        **fields,
    )


def log_request(log: RequestLog) -> None:
    """Write request log to SQLite database."""
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()

        cursor.execute(
            """
            INSERT INTO api_requests (
                request_id, timestamp, endpoint, method, client_ip,
                file_size_bytes, file_name, technician_id, job_reference,
                schedule_status, status_code, error_code, error_message,
                processing_time_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                log.request_id,
                log.timestamp,
                log.endpoint,
                log.method,
                log.client_ip,
                log.file_size_bytes,
                log.file_name,
                log.technician_id,
                log.job_reference,
                log.schedule_status,
                log.status_code,
                log.error_code,
                log.error_message,
                log.processing_time_ms,
            ),
        )

        for detail_type, message in log.details:
            cursor.execute(
                """
                INSERT INTO api_request_details (request_id, detail_type, message)
                VALUES (?, ?, ?)
            """,
                (log.request_id, detail_type, message),
            )

        conn.commit()
    finally:
        conn.close()


def safe_log_request(log: RequestLog) -> None:
    """Log without ever failing the request."""
    try:
        log_request(log)
    except Exception as e:
        print(f"Request log not written ({log.endpoint}): {e}")
