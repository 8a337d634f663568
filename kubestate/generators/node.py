"""Node metric families."""

from __future__ import annotations

from collections.abc import Callable

from kubestate.generators.base import (
    CONDITION_STATUSES,
    LabelAllowList,
    bool_float,
    created_samples,
    family,
    labels_family,
    mapping,
    resource_samples,
    sample,
    sequence,
)
from kubestate.models.metrics import FamilyGenerator, MetricSample
from kubestate.models.resources import ClusterObject

_KEYS = ("node",)


def _ids(obj: ClusterObject) -> tuple[str]:
    return (obj.name,)


def _info(obj: ClusterObject) -> list[MetricSample]:
    info = mapping(obj.status.get("nodeInfo"))
    return [
        sample(
            1,
            node=obj.name,
            kernel_version=str(info.get("kernelVersion") or ""),
            os_image=str(info.get("osImage") or ""),
            container_runtime_version=str(info.get("containerRuntimeVersion") or ""),
            kubelet_version=str(info.get("kubeletVersion") or ""),
            kubeproxy_version=str(info.get("kubeProxyVersion") or ""),
            provider_id=str(obj.spec.get("providerID") or ""),
        )
    ]


def _unschedulable(obj: ClusterObject) -> list[MetricSample]:
    return [sample(bool_float(obj.spec.get("unschedulable")), node=obj.name)]


def _conditions(obj: ClusterObject) -> list[MetricSample]:
    samples = []
    for entry in sequence(obj.status.get("conditions")):
        condition = mapping(entry)
        current = str(condition.get("status") or "").lower()
        condition_type = str(condition.get("type") or "")
        samples.extend(
            sample(bool_float(current == status), node=obj.name, condition=condition_type, status=status)
            for status in CONDITION_STATUSES
        )
    return samples


def _resource_map(field: str) -> Callable[[ClusterObject], list[MetricSample]]:
    def generate(obj: ClusterObject) -> list[MetricSample]:
        return resource_samples(mapping(obj.status.get(field)), _KEYS, _ids(obj))

    return generate


def build_families(allow_labels: LabelAllowList = None) -> list[FamilyGenerator]:
    return [
        family("kube_node_info", "Information about a cluster node.", _info),
        family("kube_node_created", "Unix creation timestamp", lambda obj: created_samples(obj, _KEYS, _ids(obj))),
        labels_family("kube_node_labels", _KEYS, _ids, allow_labels),
        family("kube_node_spec_unschedulable", "Whether a node can schedule new pods.", _unschedulable),
        family("kube_node_status_condition", "The condition of a cluster node.", _conditions),
        family(
            "kube_node_status_capacity",
            "The capacity for different resources of a node.",
            _resource_map("capacity"),
        ),
        family(
            "kube_node_status_allocatable",
            "The allocatable for different resources of a node that are available for scheduling.",
            _resource_map("allocatable"),
        ),
    ]
