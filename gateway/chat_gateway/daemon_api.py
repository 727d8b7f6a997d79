"""Thin helpers for the local inference daemon's HTTP endpoints."""

from __future__ import annotations

import logging

import httpx

from .backend_client import BackendClient
from .models import ErrorKind, Failure

logger = logging.getLogger(__name__)

BACKEND_NAME = "daemon"
START_HINT = "To start Ollama, run this in your terminal: ollama serve"


def parse_model_listing(payload) -> list[str]:
    """Extract model names from a ``/api/tags`` payload.

    Accepts ``{"models": [...]}`` or a bare list; entries may be plain strings
    or objects naming the model under ``name`` or ``model``.
    """
    if isinstance(payload, dict):
        entries = payload.get("models")
    else:
        entries = payload
    if not isinstance(entries, list):
        return []

    names: list[str] = []
    for entry in entries:
        if isinstance(entry, str):
            name = entry
        elif isinstance(entry, dict):
            name = entry.get("name") or entry.get("model") or ""
        else:
            continue
        if not isinstance(name, str):
            continue
        name = name.strip()
        if name and name not in names:
            names.append(name)
    return names


async def probe_daemon(client: BackendClient, base_url: str, timeout: float) -> Failure | None:
    """Liveness check against ``/api/version``. Returns a Failure when down."""
    try:
        resp = await client.request(
            BACKEND_NAME, "GET", f"{base_url}/api/version", timeout=timeout
        )
    except httpx.TimeoutException as e:
        logger.warning("Daemon probe timed out: %s", e)
        return Failure(
            ErrorKind.BACKEND_UNAVAILABLE,
            "Ollama server connection timed out. The server might be busy or not running.",
            START_HINT,
        )
    except httpx.ConnectError as e:
        logger.warning("Daemon connection refused: %s", e)
        return Failure(
            ErrorKind.BACKEND_UNAVAILABLE,
            'Connection to Ollama server refused. Make sure Ollama is running with "ollama serve"',
            START_HINT,
        )
    except httpx.HTTPError as e:
        logger.warning("Daemon not reachable: %s", e)
        return Failure(
            ErrorKind.BACKEND_UNAVAILABLE,
            "Please start the Ollama server on your machine and try again",
            START_HINT,
        )

    if resp.status_code != 200:
        logger.warning("Daemon probe returned status %d", resp.status_code)
        return Failure(
            ErrorKind.BACKEND_UNAVAILABLE,
            f"Ollama server responded with status {resp.status_code}",
            START_HINT,
        )

    try:
        version = resp.json().get("version", "unknown")
    except (ValueError, AttributeError):
        version = "unknown"
    logger.debug("Daemon reachable, version %s", version)
    return None


async def fetch_model_names(client: BackendClient, base_url: str) -> list[str]:
    """Return the daemon's model names. Raises httpx errors on transport failure."""
    resp = await client.request(
        BACKEND_NAME, "GET", f"{base_url}/api/tags",
        timeout_type="listing",
        max_retries=2,
    )
    if resp.status_code != 200:
        raise httpx.HTTPStatusError(
            f"Ollama API responded with status code {resp.status_code}",
            request=resp.request,
            response=resp,
        )
    try:
        payload = resp.json()
    except ValueError:
        logger.warning("Daemon model listing was not JSON")
        return []
    return parse_model_listing(payload)
