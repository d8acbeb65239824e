"""Registry configuration endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.dependencies import get_config_store, get_storage_config, verify_api_key
from api.logging import safe_log_request, start_request_log
from api.models.responses import ErrorCodes
from core.config_store import ConfigStore, ConfigStoreError
from models.registry import StorageConfig

router = APIRouter(prefix="/v1")


@router.get("/config", response_model=StorageConfig, response_model_by_alias=True)
async def read_config(
    config: StorageConfig = Depends(get_storage_config),
    _api_key: str = Depends(verify_api_key),
):
    """Webhook URL, clients and technicians (defaults when nothing is saved)."""
    return config


@router.put("/config", response_model=StorageConfig, response_model_by_alias=True)
async def write_config(
    request: Request,
    body: StorageConfig,
    store: ConfigStore = Depends(get_config_store),
    _api_key: str = Depends(verify_api_key),
):
    """Replace the whole configuration document."""
    request_log = start_request_log(request)

    try:
        try:
            store.save(body)
        except ConfigStoreError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail={
                    "error": "Configuration could not be saved",
                    "code": ErrorCodes.INTERNAL_ERROR,
                    "details": [str(e)],
                },
            )
        request_log.details.append(
            ("info", f"{len(body.clients)} clients, {len(body.technicians)} technicians saved")
        )
        request_log.finish(200)
        return body

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    finally:
        safe_log_request(request_log)
