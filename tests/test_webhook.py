"""Tests for the ERP webhook submission."""

import asyncio

import httpx
import pytest

from models.events import Attachment
from models.registry import JobRecord
from services.webhook import (
    UnrecognizedReplyError,
    WebhookError,
    WebhookReply,
    build_form,
    extract_reply_reference,
    imputation_code,
    postal_code,
    transmit,
)

URL = "https://erp.example.test/webhook/orders"


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "payload,expected",
    [
        ({"chantier_id": "CH-1", "id": "9"}, "CH-1"),
        ({"num_chantier": 202500, "reference": "R-1"}, "202500"),
        ({"chantier": " CH-2 ", "id": "9"}, "CH-2"),
        ({"reference": "R-1", "id": "9"}, "R-1"),
        ({"id": 17}, "17"),
        ({"chantier_id": "", "num_chantier": None, "id": "9"}, "9"),
    ],
)
def test_reply_reference_priority(payload, expected):
    assert extract_reply_reference(payload) == expected


@pytest.mark.parametrize("payload", [{}, {"status": "ok"}, {"id": "  "}, ["CH-1"], "CH-1", None])
def test_unrecognized_reply(payload):
    with pytest.raises(UnrecognizedReplyError):
        extract_reply_reference(payload)


def test_reply_reference_property():
    assert WebhookReply(200, {"chantier_id": "CH-1"}).reference == "CH-1"
    assert WebhookReply(200, {"status": "ok"}).reference is None


def test_imputation_code(sample_job):
    assert imputation_code(sample_job) == "802025000"


def test_build_form(sample_job, storage_config):
    technician = storage_config.find_technician("t-1")
    client = storage_config.clients[0]

    form = build_form(sample_job, technician, client)

    assert form["codeClient"] == "411DRA038"
    assert form["code_trv"] == "O3-0"
    assert form["num_chantier"] == "202500"
    assert form["num_bon_travaux"] == "BT-2025/0042"
    assert form["adresse_2"] == ""
    assert form["poseur_code_salarie"] == "SAM-A1"
    assert form["code_postal"] == "93700"
    assert all(isinstance(v, str) for v in form.values())


@pytest.mark.parametrize(
    "lines,expected",
    [
        (("12 rue de la République", None, "93700 Drancy"), "93700"),
        (("Bât. C", "75011 Paris", "Cedex 12"), "75011"),
        (("1 place de la Gare", None, "Lille"), ""),
    ],
)
def test_postal_code(lines, expected):
    job = JobRecord(address_1=lines[0], address_2=lines[1], address_3=lines[2])
    assert postal_code(job) == expected


def test_build_form_without_client_or_technician(sample_job):
    form = build_form(sample_job, None, None)

    assert form["codeClient"] == ""
    assert form["code_trv"] == "O3-0"
    assert "poseur_id" not in form


def test_transmit_sends_multipart_with_document(sample_job, storage_config):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"chantier_id": "CH-2025-17"})

    document = Attachment(name="BT-2025-0042.pdf", content=b"%PDF-1.7 scan")

    reply = asyncio.run(
        transmit(
            URL,
            sample_job,
            storage_config.find_technician("t-1"),
            storage_config.clients[0],
            document,
            http_client=client_for(handler),
        )
    )

    assert reply.status_code == 200
    assert reply.reference == "CH-2025-17"
    request = requests[0]
    assert request.method == "POST"
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="file"; filename="BT-2025-0042.pdf"' in request.content
    assert b"%PDF-1.7 scan" in request.content
    assert b'name="codeClient"' in request.content


def test_transmit_without_document(sample_job):
    def handler(request):
        assert b'name="file"' not in request.content
        return httpx.Response(201, json={"id": 5})

    reply = asyncio.run(transmit(URL, sample_job, None, None, http_client=client_for(handler)))

    assert reply.reference == "5"


def test_empty_reply_body(sample_job):
    reply = asyncio.run(
        transmit(URL, sample_job, None, None, http_client=client_for(lambda r: httpx.Response(204)))
    )

    assert reply.payload == {"status": "Empty response"}
    assert reply.reference is None


def test_rejected_submission(sample_job):
    handler = lambda request: httpx.Response(500, text="boom")  # noqa: E731

    with pytest.raises(WebhookError, match="500"):
        asyncio.run(transmit(URL, sample_job, None, None, http_client=client_for(handler)))


def test_unreachable_webhook(sample_job):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(WebhookError):
        asyncio.run(transmit(URL, sample_job, None, None, http_client=client_for(handler)))


def test_missing_url(sample_job):
    with pytest.raises(WebhookError):
        asyncio.run(transmit("", sample_job, None, None))
