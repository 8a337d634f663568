"""HTTP layer for kubestate.

Exposes:
    create_app     -- FastAPI application factory.
    MetricsHandler -- Merges collector snapshots, filters and renders them.
"""

from kubestate.api.app import create_app
from kubestate.api.handler import MetricsHandler

__all__ = ["MetricsHandler", "create_app"]
