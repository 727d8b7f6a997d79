"""Model listing routes.

Endpoints:
  GET /api/models          -> merged catalog snapshot (no refresh)
  GET /api/ollama/models   -> refresh and list daemon models
  GET /api/gguf/models     -> rescan and list local model files
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from .http_utils import failure_response
from .models import BackendKind, ErrorResponse, Failure, ModelInfo, ModelListResponse
from .services import GatewayServices, get_services

router = APIRouter(prefix="/api", tags=["models"])
logger = logging.getLogger(__name__)


def _listing(descriptors) -> ModelListResponse:
    return ModelListResponse(models=[ModelInfo.from_descriptor(d) for d in descriptors])


@router.get("/models", response_model=ModelListResponse)
async def list_models(
    kind: str | None = None, services: GatewayServices = Depends(get_services)
):
    """Return the current catalog, optionally filtered by backend kind."""
    try:
        backend_kind = BackendKind.parse(kind) if kind else None
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return _listing(services.catalog.models(backend_kind))


@router.get(
    "/ollama/models",
    response_model=ModelListResponse,
    responses={503: {"model": ErrorResponse}},
)
async def list_daemon_models(services: GatewayServices = Depends(get_services)):
    result = await services.catalog.refresh_daemon()
    if isinstance(result, Failure):
        return failure_response(result)
    return _listing(result)


@router.get("/gguf/models", response_model=ModelListResponse)
async def list_local_models(services: GatewayServices = Depends(get_services)):
    """Rescan the models directory to pick up newly added files."""
    return _listing(await services.catalog.refresh_local_async())
