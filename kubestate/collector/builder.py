"""Builder: turns a CollectorConfig into running Collectors.

Validation happens before any watcher starts, so a bad configuration never
leaves half the collectors running.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from kubestate.cache.backoff import Backoff
from kubestate.cache.store import ResourceStore
from kubestate.client.base import ClusterClient
from kubestate.collector.collector import Collector
from kubestate.errors import ConfigError
from kubestate.generators.base import LabelAllowList
from kubestate.generators.registry import generator_for
from kubestate.models.config import CollectorConfig
from kubestate.models.resources import ALL_NAMESPACES, ResourceType
from kubestate.observability.logging import get_logger

_log = get_logger("builder")


def resolve_resources(identifiers: list[str]) -> list[ResourceType]:
    """Map configured identifiers to ResourceTypes, sorted and de-duplicated.

    Raises:
        ConfigError: one or more identifiers are unknown, or none are given.
    """
    cleaned = {i.strip() for i in identifiers if i.strip()}
    if not cleaned:
        raise ConfigError("no collectors enabled")
    known = {r.value for r in ResourceType}
    unknown = sorted(cleaned - known)
    if unknown:
        raise ConfigError(f"unknown collectors: {', '.join(unknown)}; available: {', '.join(sorted(known))}")
    return [ResourceType(i) for i in sorted(cleaned)]


def resolve_namespaces(namespaces: list[str]) -> list[str]:
    """De-duplicate the namespace allow-list; any ``""`` entry means all namespaces."""
    cleaned = [n.strip() for n in namespaces]
    if not cleaned or ALL_NAMESPACES in cleaned:
        return [ALL_NAMESPACES]
    return sorted(set(cleaned))


def resolve_label_allowlist(allowlist: dict[str, list[str]]) -> dict[ResourceType, LabelAllowList]:
    """Validate the per-resource label allow-list.

    A resource without an entry, or whose entry contains ``*``, surfaces every
    label (represented as None).
    """
    known = {r.value for r in ResourceType}
    unknown = sorted(set(allowlist) - known)
    if unknown:
        raise ConfigError(f"label allow-list names unknown resources: {', '.join(unknown)}")
    resolved: dict[ResourceType, LabelAllowList] = {}
    for identifier, keys in allowlist.items():
        cleaned = frozenset(k.strip() for k in keys if k.strip())
        resolved[ResourceType(identifier)] = None if "*" in cleaned else cleaned
    return resolved


class Builder:
    """Assembles and starts the enabled Collectors.

    Args:
        client:  ClusterClient handed to every store.
        config:  Enabled resources, namespaces, label allow-list, resync period.
        backoff: Optional factory for per-store back-off policies (tests use
                 short delays).
    """

    def __init__(
        self,
        client: ClusterClient,
        config: CollectorConfig,
        backoff: Callable[[], Backoff] | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self._backoff_factory = backoff or Backoff
        self._stop_event = asyncio.Event()
        self._collectors: list[Collector] = []
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def collectors(self) -> list[Collector]:
        return list(self._collectors)

    def build(self) -> list[Collector]:
        """Validate the configuration, then create and start every collector.

        Must be called from within a running event loop.

        Raises:
            ConfigError: the configuration is invalid; nothing was started.
            RuntimeError: build() was already called.
        """
        if self._collectors:
            raise RuntimeError("Builder.build() may only be called once")

        resources = resolve_resources(self._config.collectors)
        namespaces = resolve_namespaces(self._config.namespaces)
        allowlist = resolve_label_allowlist(self._config.label_allowlist)
        if self._config.resync_period_seconds <= 0:
            raise ConfigError(f"resync period must be positive, got {self._config.resync_period_seconds}")

        collectors = []
        for resource in resources:
            scopes = namespaces if resource.namespaced else [ALL_NAMESPACES]
            stores = [
                ResourceStore(
                    self._client,
                    resource,
                    namespace,
                    resync_period=float(self._config.resync_period_seconds),
                    backoff=self._backoff_factory(),
                )
                for namespace in scopes
            ]
            generator = generator_for(resource, allowlist.get(resource))
            collectors.append(Collector(resource, stores, generator))

        # Everything is constructed; only now start the watchers.
        for collector in collectors:
            for store in collector.stores:
                self._tasks.append(store.start(self._stop_event))

        self._collectors = collectors
        _log.info(
            "collectors_started",
            collectors=[str(r) for r in resources],
            namespaces=[n or "*" for n in namespaces],
        )
        return list(collectors)

    async def wait_for_sync(self, timeout: float | None = None) -> bool:
        """Wait for every store's first list. Returns False on timeout."""
        results = await asyncio.gather(*(c.wait_synced(timeout) for c in self._collectors))
        return all(results)

    async def stop(self, grace: float = 5.0) -> None:
        """Signal every watcher to stop; cancel those still busy after *grace* seconds.

        Stores keep their contents, so scrapes still in flight finish on the
        last snapshot.
        """
        self._stop_event.set()
        if self._tasks:
            _, pending = await asyncio.wait(self._tasks, timeout=grace)
            for task in pending:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        _log.info("collectors_stopped")
