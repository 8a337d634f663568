"""List-then-watch cache for one resource type in one namespace scope.

State machine::

    INITIALIZING --list ok--> SYNCED --resync timer--> RESYNCING --list ok--> SYNCED
         ^                      |                          |
         |                  watch error                list error
         |                      v                          |
         +----backoff wait---- BACKOFF <-------------------+

Any state moves to STOPPED once the stop signal fires. A 410 Gone from the
API skips the backoff wait and re-lists immediately, as does a watch that
fails after it has delivered events. Back-off delays come from tenacity and
only start over once a cycle ends without failing.

The cache has a single writer (the store's own task) and many readers
(``snapshot()`` from scrape handlers). One lock guards single-event
application, the atomic replace after a list, and the snapshot copy.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from collections.abc import Coroutine, Iterable, Mapping
from typing import Any

from tenacity import RetryCallState

from kubestate.cache.backoff import Backoff
from kubestate.client.base import ClusterClient
from kubestate.errors import ObjectDecodeError, WatchError
from kubestate.models.resources import (
    ALL_NAMESPACES,
    ClusterObject,
    ResourceType,
    StoreState,
    WatchEvent,
    WatchEventType,
)
from kubestate.observability.logging import get_logger
from kubestate.observability.metrics import decode_errors_total, list_total, store_objects, watch_total

_DEFAULT_RESYNC_SECONDS = 300.0


class ResourceStore:
    """Mirrors every object of one resource type within one namespace scope.

    Args:
        client:        ClusterClient used for list and watch.
        resource:      Resource type to mirror.
        namespace:     Namespace scope; ``""`` means all namespaces. Ignored
                       for cluster-scoped resources.
        resync_period: Seconds between full re-lists.
        backoff:       Delay policy between failed list-watch cycles.
    """

    def __init__(
        self,
        client: ClusterClient,
        resource: ResourceType,
        namespace: str = ALL_NAMESPACES,
        *,
        resync_period: float = _DEFAULT_RESYNC_SECONDS,
        backoff: Backoff | None = None,
    ) -> None:
        if resync_period <= 0:
            raise ValueError(f"resync_period must be positive, got {resync_period}")
        self._client = client
        self.resource = resource
        self.namespace = namespace if resource.namespaced else ALL_NAMESPACES
        self._resync_period = resync_period
        self._backoff = backoff or Backoff()
        self._failed_attempts = 0
        self._watch_healthy = False

        self._lock = threading.Lock()
        self._items: dict[tuple[str, str], ClusterObject] = {}
        self._resource_version = ""

        self._state = StoreState.INITIALIZING
        self._synced = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._log = get_logger("store", resource=str(resource), namespace=self.namespace or "*")

    def __repr__(self) -> str:
        return f"ResourceStore(resource={self.resource!s}, namespace={self.namespace!r}, state={self._state!s})"

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def has_synced(self) -> bool:
        return self._synced.is_set()

    @property
    def resource_version(self) -> str:
        return self._resource_version

    @property
    def failed_attempts(self) -> int:
        """Consecutive failed list-watch attempts since the last healthy cycle."""
        return self._failed_attempts

    def snapshot(self) -> tuple[ClusterObject, ...]:
        """Return every cached object ordered by (namespace, name).

        Entries are immutable, so the returned tuple stays consistent while
        the watcher keeps applying events.
        """
        with self._lock:
            items = list(self._items.values())
        items.sort(key=lambda obj: obj.key)
        return tuple(items)

    async def wait_synced(self, timeout: float | None = None) -> bool:
        """Wait until the first list has completed. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._synced.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def replace(self, raw_objects: Iterable[Mapping[str, Any]], resource_version: str) -> None:
        """Atomically replace the cache contents with the result of a list."""
        decoded: dict[tuple[str, str], ClusterObject] = {}
        for raw in raw_objects:
            obj = self._decode(raw)
            if obj is not None and self._in_scope(obj):
                decoded[obj.key] = obj
        with self._lock:
            self._items = decoded
            self._resource_version = resource_version
        store_objects.labels(resource=str(self.resource), namespace=self.namespace).set(len(decoded))

    def apply(self, event: WatchEvent) -> None:
        """Apply one watch event.

        Raises:
            WatchError: the event is an ERROR event from the API server.
        """
        if event.type is WatchEventType.ERROR:
            code = event.raw.get("code") if isinstance(event.raw, Mapping) else None
            message = event.raw.get("message", "") if isinstance(event.raw, Mapping) else ""
            raise WatchError(self.resource, f"watch error event: {code} {message}".strip(), gone=code == 410)

        if event.type is WatchEventType.BOOKMARK:
            metadata = event.raw.get("metadata") if isinstance(event.raw, Mapping) else None
            version = metadata.get("resourceVersion") if isinstance(metadata, Mapping) else None
            if version:
                with self._lock:
                    self._resource_version = str(version)
            return

        obj = self._decode(event.raw)
        if obj is None or not self._in_scope(obj):
            return

        with self._lock:
            if event.type is WatchEventType.DELETED:
                self._items.pop(obj.key, None)
            else:
                self._items[obj.key] = obj
            if obj.resource_version:
                self._resource_version = obj.resource_version
            count = len(self._items)
        store_objects.labels(resource=str(self.resource), namespace=self.namespace).set(count)

    def _decode(self, raw: Mapping[str, Any]) -> ClusterObject | None:
        try:
            return ClusterObject.from_raw(self.resource, raw)
        except ObjectDecodeError as exc:
            decode_errors_total.labels(resource=str(self.resource)).inc()
            self._log.warning("object_decode_failed", error=str(exc))
            return None

    def _in_scope(self, obj: ClusterObject) -> bool:
        return self.namespace == ALL_NAMESPACES or obj.namespace == self.namespace

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, stop_event: asyncio.Event) -> asyncio.Task[None]:
        """Launch the list-watch loop as a background task.

        Must be called from within a running event loop.
        """
        if self._task is not None and not self._task.done():
            raise RuntimeError(f"{self!r} already started")
        self._task = asyncio.create_task(
            self._run(stop_event),
            name=f"store-{self.resource}-{self.namespace or 'all'}",
        )
        return self._task

    async def stop(self) -> None:
        """Cancel the list-watch loop. Cached objects stay readable."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _run(self, stop_event: asyncio.Event) -> None:
        self._log.debug("store_starting", resync_period=self._resync_period)
        try:
            while not stop_event.is_set():
                retrying = self._backoff.retrying(
                    sleep=functools.partial(self._pause, stop_event),
                    before_sleep=self._before_retry,
                )
                async for attempt in retrying:
                    with attempt:
                        await self._cycle(stop_event)
                self._failed_attempts = 0
        finally:
            self._state = StoreState.STOPPED
            self._log.info("store_stopped")

    async def _cycle(self, stop_event: asyncio.Event) -> None:
        """One list followed by watches until the resync deadline.

        Returns normally when the cycle needs no back-off: resync is due, stop
        fired, the resource version expired (410), or a watch that had been
        delivering fails. Any other failure propagates into the retry policy.
        """
        if stop_event.is_set():
            return
        self._watch_healthy = False
        await self._list()
        try:
            await self._watch_until_resync(stop_event)
        except Exception as exc:
            if isinstance(exc, WatchError) and exc.gone:
                # The resource version is too old; a fresh list is the only fix.
                self._log.info("watch_expired_relisting", error=str(exc))
            elif self._watch_healthy:
                self._log.info("watch_dropped_relisting", error=f"{type(exc).__name__}: {exc}")
            else:
                raise
            self._state = StoreState.RESYNCING

    async def _list(self) -> None:
        resource = str(self.resource)
        try:
            result = await self._client.list(self.resource, self.namespace)
        except Exception:
            list_total.labels(resource=resource, result="error").inc()
            raise
        list_total.labels(resource=resource, result="success").inc()
        self.replace(result.items, result.resource_version)

        first_sync = not self._synced.is_set()
        self._state = StoreState.SYNCED
        self._synced.set()
        log = self._log.info if first_sync else self._log.debug
        log("store_synced", objects=len(self), resource_version=result.resource_version)

    async def _watch_until_resync(self, stop_event: asyncio.Event) -> None:
        """Consume watch streams until the resync period elapses or stop fires.

        A stream that ends normally (server-side timeout) is re-opened from the
        last observed resource version.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._resync_period
        while not stop_event.is_set():
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            if not await self._race(self._consume_watch(), stop_event, remaining):
                break
        if not stop_event.is_set():
            self._state = StoreState.RESYNCING
            self._log.debug("store_resyncing")

    async def _race(self, coro: Coroutine[Any, Any, None], stop_event: asyncio.Event, timeout: float) -> bool:
        """Run *coro* until it finishes, *stop_event* fires or *timeout* elapses.

        Returns True only when *coro* finished; re-raises its exception.
        """
        work = asyncio.create_task(coro)
        stopper = asyncio.create_task(stop_event.wait())
        try:
            done, _ = await asyncio.wait({work, stopper}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (work, stopper):
                task.cancel()
            await asyncio.gather(work, stopper, return_exceptions=True)
        if work in done:
            work.result()
            return True
        return False

    async def _consume_watch(self) -> None:
        resource = str(self.resource)
        stream = self._client.watch(self.resource, self.namespace, self._resource_version)
        try:
            async for event in stream:
                self.apply(event)
                self._watch_healthy = True
        except Exception:
            watch_total.labels(resource=resource, result="error").inc()
            raise
        else:
            watch_total.labels(resource=resource, result="success").inc()
            self._watch_healthy = True
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def _before_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        self._failed_attempts = retry_state.attempt_number
        self._state = StoreState.BACKOFF
        self._log.warning(
            "list_watch_failed",
            error=str(exc),
            attempt=retry_state.attempt_number,
            retry_in=round(delay, 3),
        )

    async def _pause(self, stop_event: asyncio.Event, delay: float) -> None:
        """Sleep for *delay* seconds, waking early when *stop_event* fires."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
        except TimeoutError:
            pass
        if not stop_event.is_set():
            self._state = StoreState.INITIALIZING
