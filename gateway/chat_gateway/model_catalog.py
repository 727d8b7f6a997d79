"""Model catalog: local model files plus the daemon's model list.

Each refresh rebuilds the descriptor set for one backend kind and swaps in a
new immutable snapshot, so readers never see a half-built catalog.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from dataclasses import dataclass, field, replace

import httpx

from .backend_client import BackendClient
from .daemon_api import START_HINT, fetch_model_names, probe_daemon
from .models import BackendKind, ErrorKind, Failure, ModelDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSnapshot:
    local: tuple[ModelDescriptor, ...] = field(default_factory=tuple)
    daemon: tuple[ModelDescriptor, ...] = field(default_factory=tuple)

    def for_kind(self, kind: BackendKind) -> tuple[ModelDescriptor, ...]:
        if kind is BackendKind.PROCESS:
            return self.local
        if kind is BackendKind.DAEMON:
            return self.daemon
        return ()

    def lookup(self, name: str, kind: BackendKind) -> ModelDescriptor | None:
        for descriptor in self.for_kind(kind):
            if descriptor.name == name:
                return descriptor
        return None

    def all(self) -> tuple[ModelDescriptor, ...]:
        return self.local + self.daemon


def scan_model_files(models_dir: str, extension: str = ".gguf") -> tuple[ModelDescriptor, ...]:
    """List model files directly inside ``models_dir`` (no recursion)."""
    suffix = extension.lower()
    found = []
    for entry in sorted(os.listdir(models_dir)):
        path = os.path.join(models_dir, entry)
        if not entry.lower().endswith(suffix) or not os.path.isfile(path):
            continue
        found.append(ModelDescriptor(name=entry, backend_kind=BackendKind.PROCESS, locator=path))
    return tuple(found)


class ModelCatalog:
    """Read-mostly registry of addressable models across backend kinds."""

    def __init__(
        self,
        models_dir: str,
        *,
        extension: str = ".gguf",
        client: BackendClient | None = None,
        daemon_url: str = "http://localhost:11434",
        probe_timeout: float = 3.0,
    ) -> None:
        self.models_dir = models_dir
        self.extension = extension
        self._client = client
        self._daemon_url = daemon_url.rstrip("/")
        self._probe_timeout = probe_timeout
        self._snapshot = CatalogSnapshot()
        self._swap_lock = threading.Lock()

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def lookup(self, name: str, kind: BackendKind) -> ModelDescriptor | None:
        return self._snapshot.lookup(name, kind)

    def models(self, kind: BackendKind | None = None) -> tuple[ModelDescriptor, ...]:
        snapshot = self._snapshot
        if kind is None:
            return snapshot.all()
        return snapshot.for_kind(kind)

    def _swap(self, **changes) -> CatalogSnapshot:
        with self._swap_lock:
            self._snapshot = replace(self._snapshot, **changes)
            return self._snapshot

    def refresh_local(self) -> tuple[ModelDescriptor, ...]:
        """Rescan the models directory and replace the local model set."""
        try:
            os.makedirs(self.models_dir, exist_ok=True)
            found = scan_model_files(self.models_dir, self.extension)
        except OSError as e:
            logger.error("Error scanning model files in %s: %s", self.models_dir, e)
            found = ()
        self._swap(local=found)
        logger.info("Found %d local models: %s", len(found), [d.name for d in found])
        return found

    async def refresh_local_async(self) -> tuple[ModelDescriptor, ...]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.refresh_local)

    async def refresh_daemon(self) -> tuple[ModelDescriptor, ...] | Failure:
        """Query the daemon's model list and replace the daemon model set.

        On connectivity failure the previous daemon snapshot is left in place.
        """
        if self._client is None:
            return Failure(ErrorKind.BACKEND_UNAVAILABLE, "No daemon client configured", START_HINT)

        down = await probe_daemon(self._client, self._daemon_url, self._probe_timeout)
        if down is not None:
            return down

        try:
            names = await fetch_model_names(self._client, self._daemon_url)
        except httpx.HTTPError as e:
            logger.error("Error fetching daemon model list: %s", e)
            return Failure(
                ErrorKind.BACKEND_UNAVAILABLE,
                f"Failed to fetch Ollama models list: {e}",
                START_HINT,
            )

        found = tuple(
            ModelDescriptor(name=name, backend_kind=BackendKind.DAEMON, locator=name)
            for name in names
        )
        self._swap(daemon=found)
        if found:
            logger.info("Found %d daemon models: %s", len(found), ", ".join(names))
        else:
            logger.info("No daemon models found; pull one with the Ollama CLI")
        return found
