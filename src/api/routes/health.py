"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_config_store
from api.models.responses import HealthResponse
from core.config import API_VERSION
from core.config_store import ConfigStore, ConfigStoreError

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(store: ConfigStore = Depends(get_config_store)):
    """
    Health check endpoint for monitoring.

    Returns 200 if the configuration can be loaded, 503 otherwise.
    """
    timestamp = datetime.now(timezone.utc).isoformat()

    try:
        store.load()
    except ConfigStoreError as e:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                config_available=False,
                timestamp=timestamp,
                error=str(e),
            ).model_dump(),
        )

    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        config_available=True,
        timestamp=timestamp,
    )
