import asyncio
import logging
import time

import httpx

logger = logging.getLogger(__name__)

# Seconds per call type; an explicit ``timeout`` always wins
TIMEOUTS = {
    "listing": 10.0,
    "default": 60.0,
}

RETRY_DELAYS = (0.5, 1.0, 2.0)


class BackendClient:
    """Async HTTP client shared by the daemon and remote adapters.

    Holds no per-backend failure state: each request stands on its own.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def start(self) -> None:
        self._http = httpx.AsyncClient(
            follow_redirects=True,
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
            transport=self._transport,
        )

    async def stop(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("BackendClient.start() has not been called")
        return self._http

    async def request(
        self,
        backend_name: str,
        method: str,
        url: str,
        *,
        timeout: float | None = None,
        timeout_type: str = "default",
        max_retries: int = 1,
        **kwargs,
    ) -> httpx.Response:
        """Send one request; connect failures are retried up to ``max_retries`` attempts in total."""
        if timeout is None:
            timeout = TIMEOUTS.get(timeout_type, TIMEOUTS["default"])
        attempts = max(1, max_retries)

        for attempt in range(1, attempts + 1):
            try:
                return await self._http_client().request(method, url, timeout=timeout, **kwargs)
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                if attempt == attempts:
                    raise
                delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS)) - 1]
                logger.warning(
                    "%s: connect failed on attempt %d/%d (%s); retrying in %.1fs",
                    backend_name, attempt, attempts, e, delay,
                )
                await asyncio.sleep(delay)

    async def health_check(self, backend_name: str, url: str, timeout: float = 5.0) -> dict:
        """GET ``url`` once and summarise reachability for the health endpoint."""
        started = time.monotonic()
        try:
            resp = await self._http_client().get(url, timeout=timeout)
        except httpx.HTTPError as e:
            logger.debug("%s health check failed: %s", backend_name, e)
            return {"status": "unreachable", "error": str(e)}
        latency_ms = round((time.monotonic() - started) * 1000, 1)
        return {
            "status": "healthy" if resp.status_code == 200 else "unhealthy",
            "code": resp.status_code,
            "latency_ms": latency_ms,
        }
