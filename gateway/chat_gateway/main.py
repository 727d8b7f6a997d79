"""Chat Gateway: one chat endpoint in front of remote, daemon and local-file models."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings as default_settings
from .log_redaction import LogRedactor, install_redaction, remove_redaction
from .router_chat import router as chat_router
from .router_models import router as models_router
from .services import build_services, get_services

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    executable: str | None = None,
) -> FastAPI:
    """Build a gateway app. Each app owns its own catalog, client and engine."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: configure logging, discover the runner, scan models, start httpx."""
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        root_logger = logging.getLogger()
        redaction = install_redaction(
            root_logger, LogRedactor([settings.remote_api_key() or ""])
        )

        services = build_services(settings, transport=transport, executable=executable)
        await services.client.start()
        local_models = await services.catalog.refresh_local_async()
        app.state.services = services

        logger.info("Using llama.cpp executable at: %s", services.engine.executable or "(none found)")
        logger.info("Found %d model files in %s", len(local_models), services.catalog.models_dir)
        for descriptor in local_models:
            logger.info("- %s", descriptor.name)
        logger.info(
            "Gemini API key %s", "configured" if services.remote.configured else "missing (simulated responses)"
        )
        logger.info("Chat Gateway started")

        yield

        await services.client.stop()
        app.state.services = None
        remove_redaction(root_logger, redaction)
        logger.info("Chat Gateway stopped")

    app = FastAPI(title="Chat Gateway", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(chat_router)
    app.include_router(models_router)

    # --- Error handling ---

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        if isinstance(exc, httpx.ConnectError):
            return JSONResponse(status_code=503, content={"error": "Backend unavailable", "detail": str(exc)})
        if isinstance(exc, httpx.TimeoutException):
            return JSONResponse(status_code=504, content={"error": "Backend timeout", "detail": str(exc)})
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # --- Health endpoint ---

    @app.get("/health")
    async def health(request: Request):
        """Component status: runner, model directory, catalog and daemon reachability."""
        services = get_services(request)
        daemon = await services.client.health_check(
            "daemon",
            f"{services.settings.daemon_url.rstrip('/')}/api/version",
            timeout=services.settings.daemon_probe_timeout_seconds,
        )
        snapshot = services.catalog.snapshot
        runner_ok = services.engine.executable is not None
        return {
            "status": "healthy" if runner_ok and daemon["status"] == "healthy" else "degraded",
            "runner": {"executable": services.engine.executable, "available": runner_ok},
            "models_dir": services.catalog.models_dir,
            "catalog": {"local": len(snapshot.local), "daemon": len(snapshot.daemon)},
            "daemon": daemon,
            "remote": {"configured": services.remote.configured},
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
