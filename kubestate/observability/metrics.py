"""Self-telemetry exposed on ``/telemetry``.

Kept in a dedicated registry so it never mixes with the cluster state
metrics served on ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

TELEMETRY_REGISTRY = CollectorRegistry(auto_describe=True)

list_total = Counter(
    "kubestate_list_total",
    "Number of list calls against the cluster API, by resource and result.",
    labelnames=("resource", "result"),
    registry=TELEMETRY_REGISTRY,
)

watch_total = Counter(
    "kubestate_watch_total",
    "Number of watch streams opened against the cluster API, by resource and result.",
    labelnames=("resource", "result"),
    registry=TELEMETRY_REGISTRY,
)

decode_errors_total = Counter(
    "kubestate_decode_errors_total",
    "Number of malformed objects skipped while mirroring a resource.",
    labelnames=("resource",),
    registry=TELEMETRY_REGISTRY,
)

store_objects = Gauge(
    "kubestate_store_objects",
    "Number of objects currently held by a resource store.",
    labelnames=("resource", "namespace"),
    registry=TELEMETRY_REGISTRY,
)

scrape_duration_seconds = Histogram(
    "kubestate_scrape_duration_seconds",
    "Time spent rendering one /metrics response.",
    registry=TELEMETRY_REGISTRY,
)

scrape_errors_total = Counter(
    "kubestate_scrape_errors_total",
    "Number of /metrics requests answered with a server error.",
    registry=TELEMETRY_REGISTRY,
)


def render_telemetry() -> bytes:
    """Serialize the telemetry registry in the Prometheus text format."""
    return generate_latest(TELEMETRY_REGISTRY)
