"""Application bootstrap for kubestate.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: config → logging → cluster client → filters → collectors
              → warm-up → HTTP server

Shutdown stops components in reverse startup order. Each step is caught and
logged independently so one failing teardown does not block the rest.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubestate.api import MetricsHandler, create_app
from kubestate.collector import Builder, FilterSet
from kubestate.config import load_config
from kubestate.errors import ConfigError
from kubestate.models.config import KubeStateConfig
from kubestate.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog
    import uvicorn

    from kubestate.client.kubernetes import KubernetesClusterClient

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeStateApp:
    """Application root. Owns every component and coordinates their lifecycle.

    Args:
        config: Pre-built configuration (the CLI passes one with flag
                overrides); loaded from the environment when omitted.
    """

    def __init__(self, config: KubeStateConfig | None = None) -> None:
        self.config = config
        self._client: KubernetesClusterClient | None = None
        self._builder: Builder | None = None
        self._server: uvicorn.Server | None = None
        self._background_tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises:
            ConfigError: the configuration is invalid.
            _ComponentError: the cluster client or HTTP server cannot start.
        """
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level)
        self._log = get_logger("app")
        self._log.info("kubestate_starting", version=_kubestate_version())

        # --- 3. Cluster client ------------------------------------------
        await self._start_client()

        # --- 4. Metric filter -------------------------------------------
        filter_set = FilterSet.from_lists(self.config.filters.whitelist, self.config.filters.blacklist)
        self._log.info("metric_filter_configured", status=filter_set.status())

        # --- 5. Collectors ----------------------------------------------
        assert self._client is not None
        self._builder = Builder(self._client, self.config.collector)
        collectors = self._builder.build()

        # --- 6. Warm-up -------------------------------------------------
        timeout = self.config.collector.sync_timeout_seconds
        if timeout > 0 and not await self._builder.wait_for_sync(float(timeout)):
            self._log.warning(
                "initial_sync_incomplete",
                timeout=timeout,
                pending=[str(c.resource) for c in collectors if not c.has_synced],
            )

        # --- 7. HTTP server ---------------------------------------------
        await self._start_http(MetricsHandler(collectors, filter_set))

        self._running = True
        self._log.info("kubestate_started", host=self.config.api.host, port=self.config.api.port)

    async def _start_client(self) -> None:
        assert self._log is not None
        assert self.config is not None
        try:
            from kubestate.client.kubernetes import connect

            self._client = await connect(self.config.kubeconfig)
        except Exception as exc:
            raise _ComponentError("cluster_client", exc) from exc

    async def _start_http(self, handler: MetricsHandler) -> None:
        """Start the uvicorn server as a background task."""
        assert self._log is not None
        assert self.config is not None
        try:
            import uvicorn

            uv_config = uvicorn.Config(
                app=create_app(handler, enable_gzip=self.config.api.enable_gzip),
                host=self.config.api.host,
                port=self.config.api.port,
                log_config=None,  # structlog handles all logging
                access_log=False,
            )
            server = uvicorn.Server(uv_config)
            task = asyncio.create_task(server.serve(), name="http-server")
            self._background_tasks.append(task)
            self._server = server
        except Exception as exc:
            raise _ComponentError("http", exc) from exc

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop all components in reverse startup order. Safe to call twice."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubestate_shutting_down")
        self._running = False

        if self._server is not None:
            self._server.should_exit = True
        if self._background_tasks:
            _, pending = await asyncio.wait(self._background_tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()
        self._server = None

        if self._builder is not None:
            try:
                await self._builder.stop()
            except Exception as exc:
                log.error("component_stop_failed", component="collectors", error=str(exc))
            self._builder = None

        if self._client is not None:
            try:
                await self._client.close()
            except Exception as exc:
                log.debug("cluster_client_close_failed", error=str(exc))
            self._client = None

        log.info("kubestate_stopped")


def _kubestate_version() -> str:
    from kubestate import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: KubeStateConfig | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = KubeStateApp(config)
    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await app.start()
        await shutdown.wait()
    except ConfigError as exc:
        get_logger("app").critical("invalid_configuration", error=str(exc))
        raise SystemExit(1) from exc
    except _ComponentError as exc:
        get_logger("app").critical(
            "fatal_startup_error",
            component=exc.component,
            error=str(exc.cause),
        )
        raise SystemExit(1) from exc
    finally:
        await app.stop()
