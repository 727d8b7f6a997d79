"""Chat routes: one unified endpoint plus the per-backend routes the UI calls.

Endpoints:
  POST /api/chat                -> {backendKind, modelName, prompt}, returns {text}
  POST /api/gemini              -> remote API
  POST /api/ollama/{model}      -> local daemon
  POST /api/gguf/{model_name}   -> local model file via llama.cpp
  POST /api/test                -> canned test assistant
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from .canned_replies import canned_reply
from .http_utils import failure_response
from .models import (
    BackendKind,
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    Failure,
    LegacyChatResponse,
    MessageRequest,
)
from .services import GatewayServices, get_services

router = APIRouter(prefix="/api", tags=["chat"])
logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.post("/chat", response_model=ChatResponse, responses=_ERROR_RESPONSES)
async def chat(body: ChatRequest, services: GatewayServices = Depends(get_services)):
    """Route a chat message to the backend named in the request."""
    result = await services.dispatcher.handle(body.backend_kind, body.model_name, body.prompt)
    if isinstance(result, Failure):
        return failure_response(result)
    return ChatResponse(text=result.text)


async def _legacy(services: GatewayServices, kind: BackendKind, model: str, message: str):
    result = await services.dispatcher.handle(kind, model, message)
    if isinstance(result, Failure):
        return failure_response(result)
    return LegacyChatResponse(response=result.text)


@router.post("/gemini", response_model=LegacyChatResponse, responses=_ERROR_RESPONSES)
async def gemini(body: MessageRequest, services: GatewayServices = Depends(get_services)):
    return await _legacy(services, BackendKind.REMOTE_API, "gemini", body.message)


@router.post("/ollama/{model:path}", response_model=LegacyChatResponse, responses=_ERROR_RESPONSES)
async def ollama(model: str, body: MessageRequest, services: GatewayServices = Depends(get_services)):
    return await _legacy(services, BackendKind.DAEMON, model, body.message)


@router.post("/gguf/{model_name}", response_model=LegacyChatResponse, responses=_ERROR_RESPONSES)
async def gguf(model_name: str, body: MessageRequest, services: GatewayServices = Depends(get_services)):
    return await _legacy(services, BackendKind.PROCESS, model_name, body.message)


@router.post("/test", response_model=LegacyChatResponse)
async def test_assistant(body: MessageRequest, services: GatewayServices = Depends(get_services)):
    """Simulated assistant for trying the UI without any backend."""
    delay = services.settings.simulated_delay_seconds
    if delay > 0:
        await asyncio.sleep(delay)
    return LegacyChatResponse(response=canned_reply(body.message))
