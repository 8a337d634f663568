"""Unit tests for ClusterObject decoding and ResourceType metadata."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from kubestate.errors import ObjectDecodeError
from kubestate.models.resources import (
    DEFAULT_COLLECTORS,
    ClusterObject,
    ResourceType,
    parse_timestamp,
)

# ---------------------------------------------------------------------------
# ResourceType
# ---------------------------------------------------------------------------


class TestResourceType:
    def test_identifiers(self) -> None:
        assert DEFAULT_COLLECTORS == ("configmaps", "deployments", "namespaces", "nodes", "pods", "services")

    @pytest.mark.parametrize(
        ("resource", "kind", "namespaced"),
        [
            (ResourceType.PODS, "Pod", True),
            (ResourceType.CONFIGMAPS, "ConfigMap", True),
            (ResourceType.NODES, "Node", False),
            (ResourceType.NAMESPACES, "Namespace", False),
        ],
    )
    def test_kind_and_scope(self, resource: ResourceType, kind: str, namespaced: bool) -> None:
        assert resource.kind == kind
        assert resource.namespaced is namespaced


# ---------------------------------------------------------------------------
# ClusterObject.from_raw
# ---------------------------------------------------------------------------


class TestFromRaw:
    def test_full_object(self) -> None:
        raw = {
            "metadata": {
                "name": "web-1",
                "namespace": "default",
                "uid": "abc",
                "resourceVersion": "77",
                "generation": 3,
                "labels": {"app": "web"},
                "annotations": {"note": "x"},
                "creationTimestamp": "2018-02-19T00:00:00Z",
                "ownerReferences": [{"kind": "ReplicaSet", "name": "web", "controller": True}],
            },
            "spec": {"nodeName": "node-1"},
            "status": {"phase": "Running"},
        }
        obj = ClusterObject.from_raw(ResourceType.PODS, raw)
        assert obj.key == ("default", "web-1")
        assert obj.uid == "abc"
        assert obj.resource_version == "77"
        assert obj.generation == 3
        assert obj.labels == {"app": "web"}
        assert obj.creation_timestamp == datetime(2018, 2, 19, tzinfo=UTC)
        assert obj.owner_references[0]["kind"] == "ReplicaSet"
        assert obj.spec == {"nodeName": "node-1"}

    def test_decoded_object_does_not_alias_source(self) -> None:
        raw = {"metadata": {"name": "a", "namespace": "ns"}, "spec": {"ports": [{"port": 80}]}}
        obj = ClusterObject.from_raw(ResourceType.SERVICES, raw)
        raw["spec"]["ports"][0]["port"] = 443
        assert obj.spec["ports"][0]["port"] == 80

    def test_missing_optional_fields_default_empty(self) -> None:
        obj = ClusterObject.from_raw(ResourceType.NODES, {"metadata": {"name": "n"}})
        assert obj.namespace == ""
        assert obj.labels == {}
        assert obj.creation_timestamp is None
        assert obj.generation is None

    @pytest.mark.parametrize(
        "raw",
        [
            "not-a-mapping",
            {"metadata": "nope"},
            {"metadata": {}},
            {"metadata": {"name": "a", "namespace": "ns", "labels": ["x"]}},
            {"metadata": {"name": "a", "namespace": "ns"}, "spec": "bad"},
            {"metadata": {"name": "a", "namespace": "ns", "creationTimestamp": "yesterday"}},
            {"metadata": {"name": "a", "namespace": "ns", "generation": "many"}},
        ],
    )
    def test_malformed_rejected(self, raw: object) -> None:
        with pytest.raises(ObjectDecodeError):
            ClusterObject.from_raw(ResourceType.SERVICES, raw)  # type: ignore[arg-type]

    def test_namespaced_object_requires_namespace(self) -> None:
        with pytest.raises(ObjectDecodeError):
            ClusterObject.from_raw(ResourceType.PODS, {"metadata": {"name": "p"}})


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


class TestParseTimestamp:
    def test_zulu(self) -> None:
        assert parse_timestamp("2018-02-19T00:00:00Z").timestamp() == 1518998400

    def test_naive_datetime_assumed_utc(self) -> None:
        assert parse_timestamp(datetime(2018, 2, 19)).tzinfo is UTC

    @pytest.mark.parametrize("value", [None, ""])
    def test_absent(self, value: object) -> None:
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize("value", ["garbage", 12345])
    def test_invalid(self, value: object) -> None:
        with pytest.raises(ObjectDecodeError):
            parse_timestamp(value)
