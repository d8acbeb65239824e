"""FastAPI dependencies for authentication and shared resources."""

import secrets

from fastapi import Depends, Header, HTTPException, status

from api.models.responses import ErrorCodes
from core import config as settings
from core.config_store import ConfigStore, ConfigStoreError
from models.registry import StorageConfig
from services.calendar import CalendarBackend, GraphCalendarBackend
from services.extraction import DocumentAnalyzer


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not settings.BUILDSCAN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    if not secrets.compare_digest(x_api_key, settings.BUILDSCAN_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": ErrorCodes.UNAUTHORIZED,
                "details": [],
            },
        )

    return x_api_key


def get_config_store() -> ConfigStore:
    return ConfigStore(settings.CONFIG_STORE_PATH)


def get_storage_config(store: ConfigStore = Depends(get_config_store)) -> StorageConfig:
    """Current registry, loaded per request."""
    try:
        return store.load()
    except ConfigStoreError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Configuration unavailable",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [str(e)],
            },
        )


def get_calendar_backend(config: StorageConfig = Depends(get_storage_config)) -> CalendarBackend:
    return GraphCalendarBackend(config)


def get_document_analyzer() -> DocumentAnalyzer:
    return DocumentAnalyzer()
