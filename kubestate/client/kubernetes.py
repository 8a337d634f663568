"""kubernetes-asyncio backed ClusterClient.

Objects are converted to plain camelCase dicts with
``ApiClient.sanitize_for_serialization`` so the rest of kubestate never sees
generated model classes.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio import watch as k8s_watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from kubestate.errors import WatchError
from kubestate.models.resources import ListResult, ResourceType, WatchEvent, WatchEventType

_log = structlog.get_logger(component="client.kubernetes")

# Server-side watch timeout; the store re-opens the stream when it ends.
_WATCH_TIMEOUT_SECONDS = 300

# resource -> (API group class, namespaced list method, all-namespaces list method)
_LIST_METHODS: dict[ResourceType, tuple[str, str, str]] = {
    ResourceType.CONFIGMAPS: ("CoreV1Api", "list_namespaced_config_map", "list_config_map_for_all_namespaces"),
    ResourceType.DEPLOYMENTS: ("AppsV1Api", "list_namespaced_deployment", "list_deployment_for_all_namespaces"),
    ResourceType.NAMESPACES: ("CoreV1Api", "", "list_namespace"),
    ResourceType.NODES: ("CoreV1Api", "", "list_node"),
    ResourceType.PODS: ("CoreV1Api", "list_namespaced_pod", "list_pod_for_all_namespaces"),
    ResourceType.SERVICES: ("CoreV1Api", "list_namespaced_service", "list_service_for_all_namespaces"),
}


async def connect(kubeconfig: str = "") -> KubernetesClusterClient:
    """Build a client from an explicit kubeconfig, the in-cluster service account, or ~/.kube/config."""
    if kubeconfig:
        await k8s_config.load_kube_config(config_file=kubeconfig)
        _log.info("k8s_client_configured", source="kubeconfig", path=kubeconfig)
    else:
        try:
            # load_incluster_config() is synchronous in kubernetes-asyncio
            k8s_config.load_incluster_config()
            _log.info("k8s_client_configured", source="in-cluster")
        except k8s_config.ConfigException:
            await k8s_config.load_kube_config()
            _log.info("k8s_client_configured", source="kubeconfig")
    return KubernetesClusterClient(k8s_client.ApiClient())


class KubernetesClusterClient:
    """ClusterClient over kubernetes-asyncio.

    Args:
        api_client:    Configured ``kubernetes_asyncio.client.ApiClient``.
        watch_timeout: Server-side timeout for each watch request, in seconds.
    """

    def __init__(self, api_client: Any, watch_timeout: int = _WATCH_TIMEOUT_SECONDS) -> None:
        self._api_client = api_client
        self._watch_timeout = watch_timeout
        self._apis: dict[str, Any] = {
            "CoreV1Api": k8s_client.CoreV1Api(api_client),
            "AppsV1Api": k8s_client.AppsV1Api(api_client),
        }

    def _list_function(
        self,
        resource: ResourceType,
        namespace: str,
    ) -> tuple[Callable[..., Awaitable[Any]], dict[str, Any]]:
        api_name, namespaced_method, cluster_method = _LIST_METHODS[resource]
        api = self._apis[api_name]
        if namespace and resource.namespaced:
            return getattr(api, namespaced_method), {"namespace": namespace}
        return getattr(api, cluster_method), {}

    async def list(self, resource: ResourceType, namespace: str) -> ListResult:
        list_fn, kwargs = self._list_function(resource, namespace)
        try:
            response = await list_fn(**kwargs)
        except ApiException as exc:
            raise WatchError(resource, f"list failed: {exc.status} {exc.reason}", gone=exc.status == 410) from exc
        items = [self._api_client.sanitize_for_serialization(item) for item in response.items or []]
        metadata = response.metadata
        resource_version = (metadata.resource_version if metadata is not None else "") or ""
        return ListResult(items=items, resource_version=resource_version)

    async def watch(
        self,
        resource: ResourceType,
        namespace: str,
        resource_version: str,
    ) -> AsyncIterator[WatchEvent]:
        list_fn, kwargs = self._list_function(resource, namespace)
        kwargs.update(
            resource_version=resource_version,
            timeout_seconds=self._watch_timeout,
            allow_watch_bookmarks=True,
        )
        try:
            async with k8s_watch.Watch().stream(list_fn, **kwargs) as stream:
                async for event in stream:
                    raw = event.get("raw_object")
                    try:
                        event_type = WatchEventType(event.get("type", ""))
                    except ValueError:
                        _log.debug("watch_event_type_unknown", resource=str(resource), type=event.get("type"))
                        continue
                    yield WatchEvent(type=event_type, raw=raw if raw is not None else {})
        except ApiException as exc:
            raise WatchError(resource, f"watch failed: {exc.status} {exc.reason}", gone=exc.status == 410) from exc

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._api_client.close()
