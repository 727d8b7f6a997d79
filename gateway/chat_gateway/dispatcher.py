"""Routes a chat message to the adapter for its backend kind."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from .adapter_base import GenerationAdapter
from .model_catalog import ModelCatalog
from .models import (
    BackendKind,
    ErrorKind,
    Failure,
    GenerationRequest,
    GenerationResult,
)

logger = logging.getLogger(__name__)

FAILURE_STATUS: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.BACKEND_UNAVAILABLE: (503, "Start the backend service and try again."),
    ErrorKind.MODEL_NOT_FOUND: (404, "Pull or add the model first, then refresh the model list."),
    ErrorKind.REMOTE_ERROR: (502, "Check the remote API key and quota."),
    ErrorKind.PARSE_ERROR: (502, "The backend answered in an unexpected format; try again."),
    ErrorKind.PROCESS_TIMEOUT: (504, "Try a shorter prompt or a smaller model."),
    ErrorKind.PROCESS_FAILURE: (500, "Check the llama.cpp installation and the model file."),
    ErrorKind.GPU_ERROR: (500, "Retry with GPU layers disabled (-ngl 0)."),
}

_UNEXPECTED_KIND = {
    BackendKind.REMOTE_API: ErrorKind.REMOTE_ERROR,
    BackendKind.DAEMON: ErrorKind.BACKEND_UNAVAILABLE,
    BackendKind.PROCESS: ErrorKind.PROCESS_FAILURE,
}


def status_for(failure: Failure) -> tuple[int, str]:
    """HTTP status and remediation hint for a failure (the adapter's own hint wins)."""
    status, default_hint = FAILURE_STATUS.get(failure.kind, (500, ""))
    return status, failure.hint or default_hint


class Dispatcher:
    def __init__(
        self,
        catalog: ModelCatalog,
        adapters: Mapping[BackendKind, GenerationAdapter],
    ) -> None:
        self.catalog = catalog
        self._adapters = dict(adapters)

    async def handle(
        self,
        backend_kind: BackendKind,
        model_identifier: str,
        prompt: str,
        timeout: float | None = None,
    ) -> GenerationResult:
        try:
            return await self._handle(backend_kind, model_identifier, prompt, timeout)
        except Exception as e:
            logger.exception("Unexpected error handling %s request for %r", backend_kind.value, model_identifier)
            return Failure(_UNEXPECTED_KIND[backend_kind], f"Unexpected error: {e}", "")

    async def _handle(
        self,
        backend_kind: BackendKind,
        model_identifier: str,
        prompt: str,
        timeout: float | None,
    ) -> GenerationResult:
        adapter = self._adapters.get(backend_kind)
        if adapter is None:
            return Failure(
                ErrorKind.BACKEND_UNAVAILABLE,
                f"No adapter configured for backend {backend_kind.value}",
                "",
            )

        locator: str | None = None
        if backend_kind is BackendKind.PROCESS:
            descriptor = self.catalog.lookup(model_identifier, backend_kind)
            if descriptor is None:
                await self.catalog.refresh_local_async()
                descriptor = self.catalog.lookup(model_identifier, backend_kind)
            if descriptor is None:
                return Failure(
                    ErrorKind.MODEL_NOT_FOUND,
                    f'Model "{model_identifier}" not found',
                    "Please make sure the model file is in the models directory "
                    f"and has a {self.catalog.extension} extension",
                )
            locator = descriptor.locator
        elif backend_kind is BackendKind.DAEMON:
            descriptor = self.catalog.lookup(model_identifier, backend_kind)
            locator = descriptor.locator if descriptor else model_identifier

        request = GenerationRequest(
            model_name=model_identifier,
            backend_kind=backend_kind,
            prompt=prompt,
            locator=locator,
        )
        result = await adapter.generate(request, timeout)
        if isinstance(result, Failure):
            logger.warning(
                "%s request for %r failed: %s: %s",
                backend_kind.value, model_identifier, result.kind.value, result.detail,
            )
        return result
