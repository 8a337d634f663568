"""MetricsHandler: merges collector snapshots into one exposition body."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from kubestate.api.exposition import render_families
from kubestate.collector.collector import Collector
from kubestate.collector.filterset import FilterSet
from kubestate.errors import SerializationError
from kubestate.models.metrics import MetricFamily


class MetricsHandler:
    """Read-only composition of collector snapshots.

    Collectors are queried in registration order; filtering works on whole
    families. Nothing here writes to a store.
    """

    def __init__(self, collectors: Sequence[Collector], filter_set: FilterSet | None = None) -> None:
        self._collectors = tuple(collectors)
        self._filter = filter_set or FilterSet()

    @property
    def collectors(self) -> tuple[Collector, ...]:
        return self._collectors

    @property
    def filter_set(self) -> FilterSet:
        return self._filter

    def families(self) -> Iterator[MetricFamily]:
        """Yield the included families of every collector.

        Raises:
            SerializationError: two collectors produced the same family name,
                or a generator failed.
        """
        seen: set[str] = set()
        for collector in self._collectors:
            for family in collector.collect():
                if family.name in seen:
                    raise SerializationError(f"metric family {family.name} produced by more than one collector")
                seen.add(family.name)
                if self._filter.is_included(family.name):
                    yield family

    def render(self) -> str:
        return render_families(self.families())
