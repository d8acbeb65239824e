"""
Shared MS Graph client for technician calendars.
"""

from azure.identity import ClientSecretCredential
from msgraph import GraphServiceClient

from core.config import GRAPH_APP_ID, GRAPH_CLIENT_SECRET, GRAPH_TENANT_ID

GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]

_credential: ClientSecretCredential | None = None
_graph_client: GraphServiceClient | None = None


class GraphNotConfiguredError(RuntimeError):
    """Raised when calendar access is attempted without Graph credentials."""


def get_graph_client() -> GraphServiceClient:
    """Return the process-wide Graph client, creating it on first use."""
    global _credential, _graph_client
    if _graph_client is not None:
        return _graph_client

    missing = [
        name
        for name, value in (
            ("MICROSOFT_GRAPH_TENANT_ID", GRAPH_TENANT_ID),
            ("MICROSOFT_GRAPH_APP_ID", GRAPH_APP_ID),
            ("MICROSOFT_GRAPH_CLIENT_SECRET", GRAPH_CLIENT_SECRET),
        )
        if not value
    ]
    if missing:
        raise GraphNotConfiguredError(f"Missing Graph settings: {', '.join(missing)}")

    _credential = ClientSecretCredential(
        tenant_id=GRAPH_TENANT_ID,
        client_id=GRAPH_APP_ID,
        client_secret=GRAPH_CLIENT_SECRET,
    )
    _graph_client = GraphServiceClient(credentials=_credential, scopes=GRAPH_SCOPES)
    return _graph_client


def close_graph_client() -> None:
    """Release the credential's HTTP session (called on API shutdown)."""
    global _credential, _graph_client
    if _credential is not None:
        _credential.close()
    _credential = None
    _graph_client = None
