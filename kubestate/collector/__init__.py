"""Collector framework for kubestate.

Submodules
----------
collector -- Collector: binds a resource's stores to its MetricGenerator.
builder   -- Builder: validates CollectorConfig and starts the watchers.
filterset -- FilterSet: immutable allow/deny predicate over family names.
"""

from kubestate.collector.builder import Builder
from kubestate.collector.collector import Collector
from kubestate.collector.filterset import FilterSet

__all__ = ["Builder", "Collector", "FilterSet"]
