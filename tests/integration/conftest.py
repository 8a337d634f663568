"""Shared fixtures for kubestate integration tests.

Provides an in-memory FakeClusterClient that serves list and watch calls
from a dict of raw objects, so stores, builders and the HTTP layer can be
exercised end to end without a real cluster.
"""

from __future__ import annotations

import asyncio
import copy
from collections import Counter
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from kubestate.cache.backoff import Backoff
from kubestate.errors import WatchError
from kubestate.models.resources import ListResult, ResourceType, WatchEvent, WatchEventType

# ---------------------------------------------------------------------------
# Object factory helpers
# ---------------------------------------------------------------------------


def make_service(index: int, namespace: str = "default", **spec: Any) -> dict[str, Any]:
    """A Service carrying only a name and resource version, like a bare create."""
    return {
        "metadata": {
            "name": f"service{index}",
            "namespace": namespace,
            "resourceVersion": "123456",
        },
        "spec": spec,
    }


def make_configmap(index: int, namespace: str = "default") -> dict[str, Any]:
    return {
        "metadata": {
            "name": f"configmap{index}",
            "namespace": namespace,
            "resourceVersion": "123456",
        },
    }


def make_pod(index: int, namespace: str = "default", labels: dict[str, str] | None = None) -> dict[str, Any]:
    """A Pod with a single container status and nothing else."""
    return {
        "metadata": {
            "name": f"pod{index}",
            "namespace": namespace,
            "labels": labels or {},
        },
        "status": {
            "containerStatuses": [
                {
                    "name": "container1",
                    "image": "k8s.gcr.io/hyperkube1",
                    "imageID": "docker://sha256:aaa",
                    "containerID": "docker://ab123",
                }
            ],
        },
    }


def make_node(name: str) -> dict[str, Any]:
    return {
        "metadata": {"name": name, "creationTimestamp": "2018-02-19T00:00:00Z"},
        "status": {"capacity": {"cpu": "4", "memory": "8Gi"}},
    }


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll *predicate* until it is true; fail the test after *timeout* seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail(f"condition not met within {timeout}s")
        await asyncio.sleep(0.01)


# ---------------------------------------------------------------------------
# Fake cluster client
# ---------------------------------------------------------------------------


class FakeClusterClient:
    """In-memory ClusterClient.

    ``list`` serves the current objects. ``watch`` streams whatever is pushed
    through ``emit``/``push`` until ``end_watches`` closes the stream.
    ``list_failures`` makes the next N list calls of a resource fail.
    """

    def __init__(self) -> None:
        self._objects: dict[ResourceType, dict[tuple[str, str], dict[str, Any]]] = {r: {} for r in ResourceType}
        self._watchers: list[tuple[ResourceType, str, asyncio.Queue[WatchEvent | Exception | None]]] = []
        self._version = 100
        self.list_calls: Counter[ResourceType] = Counter()
        self.watch_calls: Counter[ResourceType] = Counter()
        self.list_failures: dict[ResourceType, int] = {}

    def inject(self, resource: ResourceType, raw: dict[str, Any]) -> None:
        """Add an object without notifying watchers (fixture setup)."""
        metadata = raw.get("metadata", {})
        self._objects[resource][(metadata.get("namespace", ""), metadata["name"])] = copy.deepcopy(raw)

    async def list(self, resource: ResourceType, namespace: str) -> ListResult:
        self.list_calls[resource] += 1
        remaining = self.list_failures.get(resource, 0)
        if remaining:
            self.list_failures[resource] = remaining - 1
            raise WatchError(str(resource), "connection refused")
        items = [
            copy.deepcopy(raw)
            for (ns, _), raw in sorted(self._objects[resource].items())
            if not namespace or ns == namespace
        ]
        return ListResult(items=items, resource_version=str(self._version))

    async def watch(
        self,
        resource: ResourceType,
        namespace: str,
        resource_version: str,
    ) -> AsyncIterator[WatchEvent]:
        self.watch_calls[resource] += 1
        queue: asyncio.Queue[WatchEvent | Exception | None] = asyncio.Queue()
        entry = (resource, namespace, queue)
        self._watchers.append(entry)
        try:
            while True:
                item = await queue.get()
                if item is None:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self._watchers.remove(entry)

    def emit(self, resource: ResourceType, event_type: WatchEventType, raw: dict[str, Any]) -> None:
        """Change an object and deliver the event to every matching watch."""
        self._version += 1
        raw = copy.deepcopy(raw)
        metadata = raw.setdefault("metadata", {})
        metadata["resourceVersion"] = str(self._version)
        key = (metadata.get("namespace", ""), metadata["name"])
        if event_type is WatchEventType.DELETED:
            self._objects[resource].pop(key, None)
        else:
            self._objects[resource][key] = raw
        self.push(resource, WatchEvent(type=event_type, raw=raw), namespace=key[0])

    def push(self, resource: ResourceType, item: WatchEvent | Exception | None, namespace: str = "") -> None:
        """Deliver a raw event, an exception or end-of-stream to matching watches."""
        for watched, scope, queue in list(self._watchers):
            if watched is resource and (not scope or not namespace or scope == namespace):
                queue.put_nowait(item)

    def end_watches(self, resource: ResourceType) -> None:
        self.push(resource, None)

    def active_watches(self, resource: ResourceType) -> int:
        return sum(1 for watched, _, _ in self._watchers if watched is resource)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_client() -> FakeClusterClient:
    return FakeClusterClient()


@pytest.fixture
def fast_backoff() -> Callable[[], Backoff]:
    """Back-off factory with millisecond delays."""
    return lambda: Backoff(initial=0.01, maximum=0.05, jitter=0.0)
