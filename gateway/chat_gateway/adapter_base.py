"""Generation capability shared by every backend adapter."""

from __future__ import annotations

from typing import Protocol

from .models import GenerationRequest, GenerationResult


class GenerationAdapter(Protocol):
    async def generate(
        self, request: GenerationRequest, timeout: float | None = None
    ) -> GenerationResult:
        """Produce text for ``request``; failures come back as a typed Failure."""
        ...
