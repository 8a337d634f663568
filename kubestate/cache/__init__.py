"""Cache layer for kubestate.

Provides in-memory resource stores backed by Kubernetes list-watch streams.

Submodules:
    backoff -- Exponential back-off between failed list-watch cycles.
    store   -- ResourceStore: per-resource list-then-watch cache with snapshot reads.
"""

from kubestate.cache.backoff import Backoff
from kubestate.cache.store import ResourceStore

__all__ = ["Backoff", "ResourceStore"]
