"""
Work order extraction with the Gemini generateContent REST API.

The model reads the scanned order (inline, base64) and answers with JSON
matching RESPONSE_SCHEMA, which maps onto JobRecord through its aliases.
"""

import base64
import json

import httpx
from pydantic import ValidationError

from core.config import GEMINI_API_KEY, GEMINI_API_URL, GEMINI_MODEL, GEMINI_TIMEOUT_SECONDS
from models.registry import JobRecord

SYSTEM_INSTRUCTION = """Tu es un agent spécialisé dans l'analyse de documents de construction. \
Ton rôle est d'extraire des données structurées depuis des scans de bons de commande (PDF).

Instructions d'extraction :
- num_bon_travaux : numéro de référence du bon.
- adresse_1, adresse_2, adresse_3 : adresse du chantier (rue, complément, code postal et ville).
- gardien_nom, gardien_tel, gardien_email : contact sur place.
- nom_client : nom de l'entreprise ou du donneur d'ordre.
- delai_intervention : période ou date limite d'intervention.
- date_intervention : date de rendez-vous si mentionnée.
- descriptif_travaux : description des travaux demandés.

Règles critiques :
1. CONFIDENTIALITÉ : ne jamais extraire de prix, de montants HT, TTC ou de taux de TVA.
2. FORMAT : réponds exclusivement au format JSON.
3. NULLITÉ : si un champ n'est pas trouvé, inscris null.
4. LANGUE : conserve le texte original pour les adresses et noms."""

PROMPT = "Analyse ce document de bon de commande et extrais les informations selon le schéma défini."

EXTRACTED_FIELDS = [
    "num_bon_travaux",
    "adresse_1",
    "adresse_2",
    "adresse_3",
    "gardien_nom",
    "gardien_tel",
    "gardien_email",
    "nom_client",
    "delai_intervention",
    "date_intervention",
    "descriptif_travaux",
]

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {name: {"type": "STRING", "nullable": True} for name in EXTRACTED_FIELDS},
    "required": EXTRACTED_FIELDS,
}


class ExtractionError(Exception):
    """Base class for document analysis failures."""


class ExtractionNetworkError(ExtractionError):
    """The analysis service could not be reached or failed server side."""


class ExtractionQuotaError(ExtractionError):
    """The analysis service refused the request for quota or rate limits."""


class MalformedExtractionError(ExtractionError):
    """The analysis service answered, but not with the expected JSON."""


class DocumentAnalyzer:
    """Client for one Gemini model."""

    def __init__(
        self,
        api_key: str = GEMINI_API_KEY,
        model: str = GEMINI_MODEL,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self._client = client

    def build_request(self, document: bytes, mime_type: str) -> dict:
        return {
            "system_instruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(document).decode("ascii"),
                            }
                        },
                        {"text": PROMPT},
                    ],
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    async def analyze(self, document: bytes, mime_type: str) -> JobRecord:
        """
        Extract the job fields of a scanned work order.

        Raises:
            ExtractionNetworkError: transport failure or 5xx/unexpected status
            ExtractionQuotaError: HTTP 429 or RESOURCE_EXHAUSTED
            MalformedExtractionError: no candidate text, or text that is not
                a JSON object of the expected shape
        """
        if not self.api_key:
            raise ExtractionNetworkError("GEMINI_API_KEY is not configured")

        url = f"{GEMINI_API_URL}/{self.model}:generateContent"
        payload = self.build_request(document, mime_type)
        headers = {"x-goog-api-key": self.api_key}

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=GEMINI_TIMEOUT_SECONDS) as client:
                    response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ExtractionNetworkError(f"Analysis service unreachable: {e}") from e

        if response.status_code == 429 or "RESOURCE_EXHAUSTED" in response.text[:500]:
            raise ExtractionQuotaError("Analysis quota exceeded, retry later")
        if response.status_code != 200:
            raise ExtractionNetworkError(
                f"Analysis service answered HTTP {response.status_code}: {response.text[:200]}"
            )

        return parse_response(response)


def parse_response(response: httpx.Response) -> JobRecord:
    """Turn a generateContent response into a JobRecord."""
    try:
        body = response.json()
    except ValueError as e:
        raise MalformedExtractionError("Analysis response is not JSON") from e

    try:
        text = "".join(
            part.get("text", "") for part in body["candidates"][0]["content"]["parts"]
        )
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedExtractionError("No data extracted from the document") from e
    if not text.strip():
        raise MalformedExtractionError("No data extracted from the document")

    try:
        fields = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedExtractionError(f"Extracted data is not valid JSON: {text[:200]}") from e
    if not isinstance(fields, dict):
        raise MalformedExtractionError("Extracted data is not a JSON object")

    try:
        return JobRecord.model_validate({k: v for k, v in fields.items() if k in EXTRACTED_FIELDS})
    except ValidationError as e:
        raise MalformedExtractionError(f"Extracted data has unexpected types: {e}") from e
