"""
Transmission of an analysed work order to the ERP webhook.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from core.config import (
    DEFAULT_DEAL_TYPE,
    ERP_PHASE,
    ERP_SECTOR,
    REPLY_REFERENCE_FIELDS,
    WEBHOOK_TIMEOUT_SECONDS,
)
from models.events import Attachment
from models.registry import Client, JobRecord, Technician
from services.scheduling import order_number

SOURCE_NAME = "BuildScan AI"
POSTAL_CODE = re.compile(r"\d{5}")


class WebhookError(Exception):
    """Raised when the webhook cannot be reached or rejects the submission."""


class UnrecognizedReplyError(WebhookError):
    """Raised when a webhook reply carries none of the known reference fields."""


@dataclass
class WebhookReply:
    status_code: int
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def reference(self) -> str | None:
        try:
            return extract_reply_reference(self.payload)
        except UnrecognizedReplyError:
            return None


def extract_reply_reference(payload: Any) -> str:
    """
    Return the ERP job id from a webhook reply.

    Known field names are tried in REPLY_REFERENCE_FIELDS order; the first
    one present with a non-empty value wins.
    """
    if isinstance(payload, dict):
        for name in REPLY_REFERENCE_FIELDS:
            value = payload.get(name)
            if value is not None and str(value).strip():
                return str(value).strip()
    raise UnrecognizedReplyError(
        f"Reply has none of the fields: {', '.join(REPLY_REFERENCE_FIELDS)}"
    )


def imputation_code(job: JobRecord) -> str:
    """ERP cost allocation code: sector + job number + phase."""
    return f"{ERP_SECTOR}{order_number(job.reference_code) or '000000'}{ERP_PHASE}"


def postal_code(job: JobRecord) -> str:
    """First five-digit group of the site address."""
    match = POSTAL_CODE.search(job.address)
    return match.group(0) if match else ""


def build_form(job: JobRecord, technician: Technician | None, client: Client | None) -> dict[str, str]:
    """Multipart text fields of a submission."""
    form = {
        "codeClient": client.erp_code if client else "",
        "code_trv": client.deal_type if client and client.deal_type else DEFAULT_DEAL_TYPE,
        "num_chantier": order_number(job.reference_code) or "000000",
        "imputation": imputation_code(job),
        "libelle": job.client_name or "",
        "code_postal": postal_code(job),
        "source": SOURCE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    for name, value in job.model_dump(by_alias=True).items():
        form[name] = value or ""
    if technician is not None:
        form.update(
            {
                "poseur_id": technician.id,
                "poseur_nom": technician.name,
                "poseur_entreprise": technician.company,
                "poseur_code_salarie": technician.payroll_code,
            }
        )
    return form


async def transmit(
    url: str,
    job: JobRecord,
    technician: Technician | None,
    client: Client | None,
    document: Attachment | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> WebhookReply:
    """
    POST the job, technician and source document as multipart/form-data.

    Raises:
        WebhookError: no URL, transport failure, or a non-2xx answer
    """
    if not url:
        raise WebhookError("No webhook URL configured")

    data = build_form(job, technician, client)
    files = None
    if document is not None:
        files = {"file": (document.name, document.content, document.content_type)}

    print(f"Transmitting order {job.reference_code or '?'} to {url[:30]}...")
    try:
        if http_client is not None:
            response = await http_client.post(url, data=data, files=files)
        else:
            async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS) as client_session:
                response = await client_session.post(url, data=data, files=files)
    except httpx.HTTPError as e:
        raise WebhookError(f"Webhook unreachable: {e}") from e

    if not response.is_success:
        raise WebhookError(f"Webhook answered with status {response.status_code}")

    try:
        payload = response.json() if response.content else {"status": "Empty response"}
    except ValueError:
        payload = {"raw": response.text}
    if not isinstance(payload, dict):
        payload = {"raw": payload}

    print(f"Webhook answered HTTP {response.status_code}")
    return WebhookReply(status_code=response.status_code, payload=payload)
