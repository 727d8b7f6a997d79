"""Local model-file adapter backed by the process execution engine."""

from __future__ import annotations

import logging
import os

from .models import ErrorKind, Failure, GenerationRequest, GenerationResult, Success
from .process_engine import ExecutionEngine, ExecutionOutcome, JobState

logger = logging.getLogger(__name__)


class ProcessAdapter:
    def __init__(self, engine: ExecutionEngine) -> None:
        self._engine = engine

    async def generate(
        self, request: GenerationRequest, timeout: float | None = None
    ) -> GenerationResult:
        model_path = request.locator or ""
        if not model_path or not os.path.isfile(model_path):
            return Failure(
                ErrorKind.MODEL_NOT_FOUND,
                f"The model file {request.model_name} could not be found at {model_path or '(unknown path)'}",
                "Put the model file in the models directory and refresh the model list.",
            )

        logger.info("Using model file %s", model_path)
        try:
            outcome = await self._engine.run(model_path, request.prompt, timeout=timeout)
        except OSError as e:
            logger.error("Could not prepare workspace for %s: %s", request.model_name, e)
            return Failure(
                ErrorKind.PROCESS_FAILURE,
                f"Failed to prepare a workspace: {e}",
                f"Check that {self._engine.workspace_dir} is writable.",
            )
        return outcome_to_result(outcome, self._engine.executable)


def outcome_to_result(outcome: ExecutionOutcome, executable: str | None) -> GenerationResult:
    text = outcome.text
    if text is not None:
        return Success(text)

    primary = outcome.primary
    install_hint = f"Make sure llama.cpp is installed correctly and accessible at: {executable}"

    if primary.state is JobState.LAUNCH_FAILED:
        return Failure(
            ErrorKind.BACKEND_UNAVAILABLE,
            f"Could not start llama.cpp: {primary.error}",
            "Install llama.cpp or set CHATGATE_LLAMA_PATH to the runner executable.",
        )
    if primary.gpu_error:
        logger.error("GPU error while running llama.cpp: %s", primary.stderr[-2000:])
        return Failure(
            ErrorKind.GPU_ERROR,
            "There was a GPU error while running llama.cpp",
            "Try CPU mode by setting -ngl 0",
        )
    if outcome.fallback is None and primary.state is JobState.TIMED_OUT:
        return Failure(
            ErrorKind.PROCESS_TIMEOUT,
            primary.error or "llama.cpp timed out",
            "Try a shorter prompt or a smaller model.",
        )
    if outcome.fallback is not None:
        fallback = outcome.fallback
        detail = fallback.stderr.strip() or fallback.error or "no output"
        return Failure(
            ErrorKind.PROCESS_FAILURE,
            f"Both standard and fallback commands failed: {detail[-2000:]}",
            install_hint,
        )
    detail = primary.stderr.strip() or primary.error or "Unknown error"
    return Failure(ErrorKind.PROCESS_FAILURE, detail[-2000:], install_hint)
