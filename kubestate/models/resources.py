"""Cluster object data structures and resource type enumeration."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from kubestate.errors import ObjectDecodeError


class ResourceType(StrEnum):
    """Resource types kubestate can mirror.

    The value is the identifier accepted in configuration.
    """

    CONFIGMAPS = "configmaps"
    DEPLOYMENTS = "deployments"
    NAMESPACES = "namespaces"
    NODES = "nodes"
    PODS = "pods"
    SERVICES = "services"

    @property
    def kind(self) -> str:
        return _KINDS[self]

    @property
    def namespaced(self) -> bool:
        return self not in _CLUSTER_SCOPED


_KINDS: dict[ResourceType, str] = {
    ResourceType.CONFIGMAPS: "ConfigMap",
    ResourceType.DEPLOYMENTS: "Deployment",
    ResourceType.NAMESPACES: "Namespace",
    ResourceType.NODES: "Node",
    ResourceType.PODS: "Pod",
    ResourceType.SERVICES: "Service",
}

_CLUSTER_SCOPED = frozenset({ResourceType.NAMESPACES, ResourceType.NODES})

DEFAULT_COLLECTORS: tuple[str, ...] = tuple(sorted(r.value for r in ResourceType))

# Namespace scope meaning "every namespace".
ALL_NAMESPACES = ""


class WatchEventType(StrEnum):
    """Event kinds delivered by a watch stream."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"


class StoreState(StrEnum):
    """List-watch state of a ResourceStore."""

    INITIALIZING = "initializing"
    SYNCED = "synced"
    RESYNCING = "resyncing"
    BACKOFF = "backoff"
    STOPPED = "stopped"


@dataclass(frozen=True)
class WatchEvent:
    """One event from a watch stream, object still undecoded."""

    type: WatchEventType
    raw: Mapping[str, Any]


@dataclass(frozen=True)
class ListResult:
    """Result of a list call: raw objects plus the collection resource version."""

    items: list[Mapping[str, Any]]
    resource_version: str


@dataclass(frozen=True)
class ClusterObject:
    """The most recently observed state of one cluster object.

    Immutable: the store owns a private copy of the source document and
    replaces the whole object on every change.
    """

    resource: ResourceType
    namespace: str
    name: str
    resource_version: str = ""
    generation: int | None = None
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    creation_timestamp: datetime | None = None
    owner_references: tuple[dict[str, Any], ...] = ()
    spec: dict[str, Any] = field(default_factory=dict)
    status: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, str]:
        """Cache key within one store."""
        return (self.namespace, self.name)

    @classmethod
    def from_raw(cls, resource: ResourceType, raw: Mapping[str, Any]) -> ClusterObject:
        """Decode a camelCase API document.

        Raises:
            ObjectDecodeError: *raw* is not a mapping, has no name, or carries
                fields of the wrong shape.
        """
        if not isinstance(raw, Mapping):
            raise ObjectDecodeError(f"{resource}: expected a mapping, got {type(raw).__name__}")
        metadata = raw.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise ObjectDecodeError(f"{resource}: metadata is not a mapping")
        name = metadata.get("name")
        if not name or not isinstance(name, str):
            raise ObjectDecodeError(f"{resource}: object has no name")

        namespace = metadata.get("namespace") or ""
        if resource.namespaced and not namespace:
            raise ObjectDecodeError(f"{resource}: {name} has no namespace")

        labels = metadata.get("labels") or {}
        annotations = metadata.get("annotations") or {}
        owners = metadata.get("ownerReferences") or []
        spec = raw.get("spec") or {}
        status = raw.get("status") or {}
        for field_name, value, expected in (
            ("labels", labels, Mapping),
            ("annotations", annotations, Mapping),
            ("ownerReferences", owners, list),
            ("spec", spec, Mapping),
            ("status", status, Mapping),
        ):
            if not isinstance(value, expected):
                raise ObjectDecodeError(f"{resource}: {namespace}/{name} has malformed {field_name}")

        return cls(
            resource=resource,
            namespace=str(namespace),
            name=name,
            resource_version=str(metadata.get("resourceVersion") or ""),
            generation=_generation(metadata.get("generation")),
            uid=str(metadata.get("uid") or ""),
            labels={str(k): str(v) for k, v in labels.items()},
            annotations={str(k): str(v) for k, v in annotations.items()},
            creation_timestamp=parse_timestamp(metadata.get("creationTimestamp")),
            owner_references=tuple(dict(copy.deepcopy(o)) for o in owners if isinstance(o, Mapping)),
            spec=copy.deepcopy(dict(spec)),
            status=copy.deepcopy(dict(status)),
        )


def parse_timestamp(value: object) -> datetime | None:
    """Parse an RFC 3339 timestamp as emitted by the API server.

    Returns None for missing values. Raises ObjectDecodeError for strings
    that are not timestamps.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ObjectDecodeError(f"invalid timestamp: {value!r}") from exc
    else:
        raise ObjectDecodeError(f"invalid timestamp: {value!r}")
    # the API server always emits UTC
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _generation(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        raise ObjectDecodeError(f"invalid generation: {value!r}") from exc
