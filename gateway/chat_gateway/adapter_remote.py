"""Remote cloud API adapter (Gemini ``generateContent``)."""

from __future__ import annotations

import logging

import httpx

from .backend_client import BackendClient
from .models import ErrorKind, Failure, GenerationRequest, GenerationResult, Success

logger = logging.getLogger(__name__)

BACKEND_NAME = "gemini"
SIMULATED_RESPONSE = (
    "This is a simulated Gemini response because no valid API key was found. "
    "Add a valid Gemini API key to the .env file or try another model."
)
KEY_HINT = "Set CHATGATE_GEMINI_API_KEY to a valid Gemini API key."


def extract_candidate_text(payload) -> str | None:
    """Return ``candidates[0].content.parts[0].text`` or None if any hop is missing."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class RemoteApiAdapter:
    def __init__(
        self,
        client: BackendClient,
        *,
        api_key: str | None,
        api_url: str,
        temperature: float = 0.7,
        max_output_tokens: int = 1000,
        timeout: float = 60.0,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._api_url = api_url
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def generate(
        self, request: GenerationRequest, timeout: float | None = None
    ) -> GenerationResult:
        if not self._api_key:
            logger.info("No Gemini API key configured; returning simulated response")
            return Success(SIMULATED_RESPONSE)

        body = {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "temperature": self._temperature,
                "maxOutputTokens": self._max_output_tokens,
            },
        }
        try:
            resp = await self._client.request(
                BACKEND_NAME, "POST", self._api_url,
                json=body,
                headers={"x-goog-api-key": self._api_key},
                timeout=timeout or self._timeout,
            )
        except httpx.TimeoutException as e:
            logger.error("Gemini API timed out: %s", e)
            return Failure(ErrorKind.REMOTE_ERROR, "Gemini API request timed out", "Try again later.")
        except httpx.HTTPError as e:
            logger.error("Gemini API transport error: %s", e)
            return Failure(ErrorKind.REMOTE_ERROR, f"Gemini API request failed: {e}", "Check network access.")

        try:
            data = resp.json()
        except ValueError:
            data = None

        vendor_error = data.get("error") if isinstance(data, dict) else None
        if vendor_error or resp.status_code >= 400:
            message = _vendor_message(vendor_error) or f"Gemini API responded with status {resp.status_code}"
            logger.error("Gemini API error: %s", message)
            return Failure(ErrorKind.REMOTE_ERROR, message, KEY_HINT if resp.status_code in (401, 403) else "")

        text = extract_candidate_text(data)
        if text is None:
            logger.error("Unexpected Gemini API response structure: %s", str(data)[:500])
            return Failure(
                ErrorKind.PARSE_ERROR,
                "unexpected response shape",
                "Received a response from Gemini API but could not parse the content.",
            )
        return Success(text)


def _vendor_message(error) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or "Error from Gemini API")
    if error:
        return str(error)
    return ""
