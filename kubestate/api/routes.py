"""HTTP routes: /metrics, /healthz, /telemetry and a landing page."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.concurrency import run_in_threadpool

from kubestate.api.handler import MetricsHandler
from kubestate.errors import SerializationError
from kubestate.observability.metrics import render_telemetry, scrape_duration_seconds, scrape_errors_total

_log = structlog.get_logger(component="api.routes")

router = APIRouter()

_LANDING_PAGE = """<html>
<head><title>kubestate</title></head>
<body>
<h1>kubestate</h1>
<ul>
<li><a href="/metrics">metrics</a></li>
<li><a href="/healthz">healthz</a></li>
<li><a href="/telemetry">telemetry</a></li>
</ul>
</body>
</html>
"""


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(request: Request) -> PlainTextResponse:
    """Render the merged, filtered snapshot of every collector.

    Rendering runs in the threadpool so watch streams keep being applied on
    the event loop while a large snapshot is serialized.
    """
    handler: MetricsHandler = request.app.state.handler
    try:
        with scrape_duration_seconds.time():
            body = await run_in_threadpool(handler.render)
    except SerializationError as exc:
        scrape_errors_total.inc()
        _log.error("scrape_failed", error=str(exc))
        return PlainTextResponse(f"error rendering metrics: {exc}\n", status_code=500)
    return PlainTextResponse(body)


@router.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> PlainTextResponse:
    return PlainTextResponse("ok")


@router.get("/telemetry")
async def telemetry() -> Response:
    return Response(content=render_telemetry(), media_type=CONTENT_TYPE_LATEST)


@router.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    return HTMLResponse(_LANDING_PAGE)
