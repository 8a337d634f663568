"""Collector: one resource type's stores bound to its metric generator."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from kubestate.cache.store import ResourceStore
from kubestate.errors import SerializationError
from kubestate.generators.registry import MetricGenerator
from kubestate.models.metrics import MetricFamily
from kubestate.models.resources import ResourceType


class Collector:
    """Produces the full metric snapshot of one resource type on demand.

    A namespaced resource restricted to several namespaces has one store per
    namespace; all of them feed the same generator.
    """

    def __init__(self, resource: ResourceType, stores: Sequence[ResourceStore], generator: MetricGenerator) -> None:
        if not stores:
            raise ValueError(f"collector for {resource} needs at least one store")
        self.resource = resource
        self._stores = tuple(stores)
        self._generator = generator

    def __repr__(self) -> str:
        return f"Collector(resource={self.resource!s}, stores={len(self._stores)})"

    @property
    def stores(self) -> tuple[ResourceStore, ...]:
        return self._stores

    @property
    def has_synced(self) -> bool:
        return all(store.has_synced for store in self._stores)

    async def wait_synced(self, timeout: float | None = None) -> bool:
        results = await asyncio.gather(*(store.wait_synced(timeout) for store in self._stores))
        return all(results)

    def collect(self) -> list[MetricFamily]:
        """Recompute every family from the current store contents.

        Every registered family is returned, in registration order, even when
        it has no samples.

        Raises:
            SerializationError: a generator failed on one of the objects.
        """
        families = [MetricFamily(name=f.name, help=f.help, kind=f.kind) for f in self._generator.families]
        for store in self._stores:
            for obj in store.snapshot():
                try:
                    generated = self._generator.generate(obj)
                except Exception as exc:
                    raise SerializationError(
                        f"generating {self.resource} metrics for {obj.namespace}/{obj.name} failed: {exc}"
                    ) from exc
                for target, (_, samples) in zip(families, generated, strict=True):
                    target.samples.extend(samples)
        return families
