"""Wiring of the catalog, adapters, engine and dispatcher for one gateway."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from .adapter_daemon import DaemonAdapter
from .adapter_process import ProcessAdapter
from .adapter_remote import RemoteApiAdapter
from .backend_client import BackendClient
from .config import Settings, get_runner_search, load_gateway_config
from .dispatcher import Dispatcher
from .model_catalog import ModelCatalog
from .models import BackendKind
from .process_engine import ExecutionEngine
from .runner_discovery import find_runner_executable

logger = logging.getLogger(__name__)


@dataclass
class GatewayServices:
    settings: Settings
    client: BackendClient
    catalog: ModelCatalog
    engine: ExecutionEngine
    remote: RemoteApiAdapter
    dispatcher: Dispatcher


def build_services(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    executable: str | None = None,
) -> GatewayServices:
    """Assemble an independent set of gateway components.

    ``executable`` bypasses runner discovery (tests pass a fake runner).
    """
    if executable is None:
        config = load_gateway_config(settings.gateway_config_path)
        candidate_dirs, candidate_names = get_runner_search(config)
        executable = find_runner_executable(candidate_dirs, candidate_names, settings.llama_path)

    client = BackendClient(transport=transport)
    catalog = ModelCatalog(
        settings.resolved_models_dir,
        extension=settings.model_extension,
        client=client,
        daemon_url=settings.daemon_url,
        probe_timeout=settings.daemon_probe_timeout_seconds,
    )
    engine = ExecutionEngine(
        executable,
        settings.resolved_workspace_dir,
        timeout=settings.process_timeout_seconds,
        fallback_timeout=settings.fallback_timeout_seconds,
        terminate_grace=settings.terminate_grace_seconds,
    )
    remote = RemoteApiAdapter(
        client,
        api_key=settings.remote_api_key(),
        api_url=settings.gemini_api_url,
        timeout=settings.remote_timeout_seconds,
    )
    daemon = DaemonAdapter(
        client,
        base_url=settings.daemon_url,
        probe_timeout=settings.daemon_probe_timeout_seconds,
        timeout=settings.daemon_timeout_seconds,
    )
    dispatcher = Dispatcher(
        catalog,
        {
            BackendKind.REMOTE_API: remote,
            BackendKind.DAEMON: daemon,
            BackendKind.PROCESS: ProcessAdapter(engine),
        },
    )
    return GatewayServices(
        settings=settings,
        client=client,
        catalog=catalog,
        engine=engine,
        remote=remote,
        dispatcher=dispatcher,
    )


def get_services(request: Request) -> GatewayServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Gateway services are not initialized")
    return services
