"""Prometheus metrics collection and HTTP exposition.

Defines module-level metric objects shared by every client in the process.
The caches count hits and misses, the fetcher counts relay queries by
outcome, and subscription channels count deliveries.

The ``MetricsServer`` provides an async HTTP endpoint (via aiohttp) for
Prometheus scraping. It is only useful for long-running processes such as
``python -m nostrapps watch``; configuration is handled through
``MetricsConfig``, embedded in [ClientConfig][nostrapps.core.config.ClientConfig].

Architecture:
    CACHE_LOOKUPS:            Cache lookups by cache name and result (hit/miss).
    RELAY_QUERIES:            Relay queries by operation and result (ok/failed).
    SUBSCRIPTION_DELIVERIES:  Records delivered to subscribers, by channel.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is only started when ``enabled`` is True.
    """

    enabled: bool = Field(default=False, description="Expose metrics over HTTP")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Client Metrics
# ---------------------------------------------------------------------------

CACHE_LOOKUPS = Counter(
    "nostrapps_cache_lookups",
    "Cache lookups by cache and result",
    ["cache", "result"],
)

RELAY_QUERIES = Counter(
    "nostrapps_relay_queries",
    "Relay queries by operation and result",
    ["operation", "result"],
)

SUBSCRIPTION_DELIVERIES = Counter(
    "nostrapps_subscription_deliveries",
    "Records delivered to subscription callbacks",
    ["channel"],
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible /metrics endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... client runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for Prometheus scrape requests.

        No-op when metrics are disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._config.host, self._config.port)
        await site.start()

    async def stop(self) -> None:
        """Stop the HTTP server. Safe to call when it was never started."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(body=generate_latest(), headers={"Content-Type": CONTENT_TYPE_LATEST})


async def start_metrics_server(config: MetricsConfig | None = None) -> MetricsServer:
    """Create and start a metrics server; the caller must ``stop()`` it."""
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
