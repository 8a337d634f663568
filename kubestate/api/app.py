"""FastAPI application factory for kubestate.

Usage::

    from kubestate.api.app import create_app

    app = create_app(handler=MetricsHandler(collectors, filter_set))

The factory is used by both the production bootstrap (``kubestate.app``) and
tests.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import PlainTextResponse

from kubestate.api.handler import MetricsHandler
from kubestate.api.routes import router
from kubestate.observability.metrics import scrape_errors_total

_log = structlog.get_logger(component="api.app")


def create_app(handler: MetricsHandler, enable_gzip: bool = False) -> FastAPI:
    """Create the HTTP application serving *handler*.

    Args:
        handler:     MetricsHandler rendering /metrics.
        enable_gzip: Compress responses for clients sending
                     ``Accept-Encoding: gzip``.
    """
    from kubestate import __version__

    app = FastAPI(
        title="kubestate",
        summary="Kubernetes object state as Prometheus metrics",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Dependencies live in app.state so route handlers reach them without globals.
    app.state.handler = handler

    if enable_gzip:
        app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.include_router(router)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        if request.url.path == "/metrics":
            scrape_errors_total.inc()
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return PlainTextResponse("internal server error\n", status_code=500)

    return app
