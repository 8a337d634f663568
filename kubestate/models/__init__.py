"""Core data structures for kubestate."""

from kubestate.models.config import (
    APIConfig,
    CollectorConfig,
    FilterConfig,
    KubeStateConfig,
    LogConfig,
)
from kubestate.models.metrics import (
    FamilyGenerator,
    MetricFamily,
    MetricKind,
    MetricSample,
)
from kubestate.models.resources import (
    ALL_NAMESPACES,
    DEFAULT_COLLECTORS,
    ClusterObject,
    ListResult,
    ResourceType,
    StoreState,
    WatchEvent,
    WatchEventType,
)

__all__ = [
    "ALL_NAMESPACES",
    "APIConfig",
    "ClusterObject",
    "CollectorConfig",
    "DEFAULT_COLLECTORS",
    "FamilyGenerator",
    "FilterConfig",
    "KubeStateConfig",
    "ListResult",
    "LogConfig",
    "MetricFamily",
    "MetricKind",
    "MetricSample",
    "ResourceType",
    "StoreState",
    "WatchEvent",
    "WatchEventType",
]
