"""Locate the model-runner executable (llama.cpp CLI)."""

from __future__ import annotations

import logging
import os
import shutil

logger = logging.getLogger(__name__)


def _is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def find_runner_executable(
    candidate_dirs: list[str],
    candidate_names: list[str],
    override: str = "",
) -> str | None:
    """Return the runner path, or None when nothing usable is found.

    Search order: each candidate directory in turn, trying every candidate
    name; then the configured override; then the candidate names on PATH.
    """
    for directory in candidate_dirs:
        for name in candidate_names:
            full_path = os.path.join(os.path.expanduser(directory), name)
            if _is_executable(full_path):
                logger.info("Found llama.cpp executable at: %s", full_path)
                return full_path

    if override:
        resolved = shutil.which(override) or (override if _is_executable(override) else None)
        if resolved:
            logger.info("Using configured llama.cpp executable: %s", resolved)
            return resolved
        logger.warning("Configured llama.cpp path is not executable: %s", override)

    for name in candidate_names:
        resolved = shutil.which(name)
        if resolved:
            logger.info("Found llama.cpp executable on PATH: %s", resolved)
            return resolved

    logger.warning("No llama.cpp executable found; local model files cannot be run")
    return None
