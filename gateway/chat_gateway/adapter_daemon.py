"""Local inference daemon adapter (Ollama HTTP API)."""

from __future__ import annotations

import logging

import httpx

from .backend_client import BackendClient
from .daemon_api import BACKEND_NAME, fetch_model_names, probe_daemon
from .model_aliases import resolve_model_alias
from .models import ErrorKind, Failure, GenerationRequest, GenerationResult, Success

logger = logging.getLogger(__name__)


def is_model_not_found(error_text: str) -> bool:
    lowered = error_text.lower()
    return "not found" in lowered and "model" in lowered


class _UnknownModel(Exception):
    pass


class DaemonAdapter:
    def __init__(
        self,
        client: BackendClient,
        *,
        base_url: str = "http://localhost:11434",
        probe_timeout: float = 3.0,
        timeout: float = 300.0,
        temperature: float = 0.7,
        num_predict: int = 1024,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._probe_timeout = probe_timeout
        self._timeout = timeout
        self._temperature = temperature
        self._num_predict = num_predict

    async def generate(
        self, request: GenerationRequest, timeout: float | None = None
    ) -> GenerationResult:
        down = await probe_daemon(self._client, self._base_url, self._probe_timeout)
        if down is not None:
            return down

        requested = request.model_name
        model = request.locator or requested
        logger.info("Sending message to Ollama model %s (length: %d chars)", model, len(request.prompt))

        try:
            try:
                return await self._generate_once(model, request.prompt, timeout)
            except _UnknownModel:
                alias = await self._suggest_alias(model)
                if alias is None:
                    raise
                logger.info("Model %s not found; retrying with %s", model, alias)
                return await self._generate_once(alias, request.prompt, timeout)
        except _UnknownModel:
            return Failure(
                ErrorKind.MODEL_NOT_FOUND,
                f'Model "{requested}" not found in your Ollama installation',
                f"Try pulling the model first with: ollama pull {requested}",
            )
        except httpx.TimeoutException as e:
            logger.error("Ollama generation timed out: %s", e)
            return Failure(
                ErrorKind.BACKEND_UNAVAILABLE,
                f'Ollama model "{requested}" did not answer in time',
                "The server might be busy; try again or use a smaller model.",
            )
        except httpx.HTTPError as e:
            logger.error("Ollama API error: %s", e)
            return Failure(
                ErrorKind.BACKEND_UNAVAILABLE,
                f'Failed to generate response from Ollama model "{requested}": {e}',
                "Make sure Ollama is running with: ollama serve",
            )

    async def _generate_once(self, model: str, prompt: str, timeout: float | None) -> GenerationResult:
        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": self._temperature, "num_predict": self._num_predict},
        }
        resp = await self._client.request(
            BACKEND_NAME, "POST", f"{self._base_url}/api/generate",
            json=payload,
            timeout=timeout or self._timeout,
        )

        if resp.status_code >= 400:
            error_text = _error_text(resp)
            logger.error("Ollama API error response: %s", error_text)
            if is_model_not_found(error_text):
                raise _UnknownModel(model)
            return Failure(
                ErrorKind.REMOTE_ERROR,
                f"Ollama API responded with status {resp.status_code}: {error_text}",
                "",
            )

        try:
            data = resp.json()
        except ValueError:
            data = None
        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            return Failure(ErrorKind.PARSE_ERROR, "unexpected response shape", "")
        logger.info("Ollama response generated (length: %d chars)", len(text))
        return Success(text)

    async def _suggest_alias(self, model: str) -> str | None:
        try:
            known = await fetch_model_names(self._client, self._base_url)
        except httpx.HTTPError as e:
            logger.info("Could not list models for alias lookup: %s", e)
            return None
        alias = resolve_model_alias(model, known)
        if alias is None or alias == model:
            return None
        return alias


def _error_text(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return resp.text
