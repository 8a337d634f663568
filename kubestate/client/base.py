"""The capability kubestate needs from a cluster API client."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from kubestate.models.resources import ListResult, ResourceType, WatchEvent


class ClusterClient(Protocol):
    """List and watch one resource type within a namespace scope.

    ``namespace`` is ``""`` for every namespace (and for cluster-scoped
    resources). Implementations raise ``WatchError`` for transport and API
    failures; any other exception is treated the same way by the store.
    """

    async def list(self, resource: ResourceType, namespace: str) -> ListResult: ...

    def watch(
        self,
        resource: ResourceType,
        namespace: str,
        resource_version: str,
    ) -> AsyncIterator[WatchEvent]: ...
