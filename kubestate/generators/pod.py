"""Pod metric families.

Container families iterate ``status.containerStatuses`` in API order; resource
families iterate ``spec.containers`` in API order and each resource map by
resource name. Reason families emit one sample per known reason, value 1 on
the container's current reason.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from kubestate.generators.base import (
    NONE_VALUE,
    LabelAllowList,
    bool_float,
    condition_samples,
    created_samples,
    family,
    labels_family,
    mapping,
    one_hot,
    quantity_or_none,
    resource_samples,
    sample,
    sample_from,
    sequence,
    unix_timestamp,
)
from kubestate.models.metrics import FamilyGenerator, MetricKind, MetricSample
from kubestate.models.resources import ClusterObject

_KEYS = ("namespace", "pod")

POD_PHASES = ("Pending", "Succeeded", "Failed", "Running", "Unknown")

WAITING_REASONS = (
    "ContainerCreating",
    "CrashLoopBackOff",
    "CreateContainerConfigError",
    "ErrImagePull",
    "ImagePullBackOff",
)

TERMINATED_REASONS = ("OOMKilled", "Completed", "Error", "ContainerCannotRun")


def _ids(obj: ClusterObject) -> tuple[str, str]:
    return (obj.namespace, obj.name)


def _controller(obj: ClusterObject) -> Mapping[str, Any] | None:
    for owner in obj.owner_references:
        if owner.get("controller"):
            return owner
    return None


def _container_statuses(obj: ClusterObject) -> list[Mapping[str, Any]]:
    return [mapping(cs) for cs in sequence(obj.status.get("containerStatuses"))]


def _containers(obj: ClusterObject) -> list[Mapping[str, Any]]:
    return [mapping(c) for c in sequence(obj.spec.get("containers"))]


def _conditions(obj: ClusterObject, condition_type: str) -> list[Mapping[str, Any]]:
    return [
        mapping(c) for c in sequence(obj.status.get("conditions")) if mapping(c).get("type") == condition_type
    ]


def _info(obj: ClusterObject) -> list[MetricSample]:
    controller = _controller(obj)
    return [
        sample(
            1,
            namespace=obj.namespace,
            pod=obj.name,
            host_ip=str(obj.status.get("hostIP") or ""),
            pod_ip=str(obj.status.get("podIP") or ""),
            uid=obj.uid,
            node=str(obj.spec.get("nodeName") or ""),
            created_by_kind=str(controller.get("kind") or NONE_VALUE) if controller else NONE_VALUE,
            created_by_name=str(controller.get("name") or NONE_VALUE) if controller else NONE_VALUE,
        )
    ]


def _start_time(obj: ClusterObject) -> list[MetricSample]:
    ts = unix_timestamp(obj.status.get("startTime"))
    return [] if ts is None else [sample_from(ts, _KEYS, _ids(obj))]


def _completion_time(obj: ClusterObject) -> list[MetricSample]:
    finished = [
        unix_timestamp(mapping(mapping(cs.get("state")).get("terminated")).get("finishedAt"))
        for cs in _container_statuses(obj)
        if mapping(cs.get("state")).get("terminated") is not None
    ]
    finished_at = [ts for ts in finished if ts is not None]
    return [sample_from(max(finished_at), _KEYS, _ids(obj))] if finished_at else []


def _owner(obj: ClusterObject) -> list[MetricSample]:
    if not obj.owner_references:
        return [
            sample(
                1,
                namespace=obj.namespace,
                pod=obj.name,
                owner_kind=NONE_VALUE,
                owner_name=NONE_VALUE,
                owner_is_controller=NONE_VALUE,
            )
        ]
    return [
        sample(
            1,
            namespace=obj.namespace,
            pod=obj.name,
            owner_kind=str(owner.get("kind") or ""),
            owner_name=str(owner.get("name") or ""),
            owner_is_controller="true" if owner.get("controller") else "false",
        )
        for owner in obj.owner_references
    ]


def _scheduled_time(obj: ClusterObject) -> list[MetricSample]:
    samples = []
    for condition in _conditions(obj, "PodScheduled"):
        if str(condition.get("status")) != "True":
            continue
        ts = unix_timestamp(condition.get("lastTransitionTime"))
        if ts is not None:
            samples.append(sample_from(ts, _KEYS, _ids(obj)))
    return samples


def _phase(obj: ClusterObject) -> list[MetricSample]:
    phase = str(obj.status.get("phase") or "")
    if not phase:
        return []
    return one_hot(_KEYS, _ids(obj), "phase", phase, POD_PHASES)


def _condition(condition_type: str) -> Callable[[ClusterObject], list[MetricSample]]:
    def generate(obj: ClusterObject) -> list[MetricSample]:
        samples: list[MetricSample] = []
        for condition in _conditions(obj, condition_type):
            samples.extend(condition_samples(_KEYS, _ids(obj), condition.get("status")))
        return samples

    return generate


def _per_container_status(
    value_fn: Callable[[Mapping[str, Any]], float],
) -> Callable[[ClusterObject], list[MetricSample]]:
    def generate(obj: ClusterObject) -> list[MetricSample]:
        return [
            sample(value_fn(cs), namespace=obj.namespace, pod=obj.name, container=str(cs.get("name") or ""))
            for cs in _container_statuses(obj)
        ]

    return generate


def _per_container_reason(
    state_fn: Callable[[Mapping[str, Any]], Mapping[str, Any]],
    reasons: tuple[str, ...],
) -> Callable[[ClusterObject], list[MetricSample]]:
    def generate(obj: ClusterObject) -> list[MetricSample]:
        samples = []
        for cs in _container_statuses(obj):
            current = str(mapping(state_fn(cs)).get("reason") or "")
            samples.extend(
                one_hot(
                    [*_KEYS, "container"],
                    [obj.namespace, obj.name, str(cs.get("name") or "")],
                    "reason",
                    current,
                    reasons,
                )
            )
        return samples

    return generate


def _container_info(obj: ClusterObject) -> list[MetricSample]:
    return [
        sample(
            1,
            namespace=obj.namespace,
            pod=obj.name,
            container=str(cs.get("name") or ""),
            image=str(cs.get("image") or ""),
            image_id=str(cs.get("imageID") or ""),
            container_id=str(cs.get("containerID") or ""),
        )
        for cs in _container_statuses(obj)
    ]


def _state(cs: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    return mapping(mapping(cs.get("state")).get(name))


def _has_state(name: str) -> Callable[[Mapping[str, Any]], float]:
    return lambda cs: bool_float(mapping(cs.get("state")).get(name) is not None)


def _resources(kind: str) -> Callable[[ClusterObject], list[MetricSample]]:
    def generate(obj: ClusterObject) -> list[MetricSample]:
        node = str(obj.spec.get("nodeName") or "")
        samples = []
        for container in _containers(obj):
            resources = mapping(mapping(container.get("resources")).get(kind))
            samples.extend(
                resource_samples(
                    resources,
                    [*_KEYS, "container", "node"],
                    [obj.namespace, obj.name, str(container.get("name") or ""), node],
                )
            )
        return samples

    return generate


def _single_resource(kind: str, resource: str) -> Callable[[ClusterObject], list[MetricSample]]:
    def generate(obj: ClusterObject) -> list[MetricSample]:
        node = str(obj.spec.get("nodeName") or "")
        samples = []
        for container in _containers(obj):
            amount = quantity_or_none(mapping(mapping(container.get("resources")).get(kind)).get(resource))
            if amount is None:
                continue
            samples.append(
                sample(
                    amount,
                    namespace=obj.namespace,
                    pod=obj.name,
                    container=str(container.get("name") or ""),
                    node=node,
                )
            )
        return samples

    return generate


def _pvc_volumes(obj: ClusterObject) -> list[tuple[str, Mapping[str, Any]]]:
    volumes = []
    for volume in sequence(obj.spec.get("volumes")):
        claim = mapping(volume).get("persistentVolumeClaim")
        if claim is not None:
            volumes.append((str(mapping(volume).get("name") or ""), mapping(claim)))
    return volumes


def _pvc_info(obj: ClusterObject) -> list[MetricSample]:
    return [
        sample(
            1,
            namespace=obj.namespace,
            pod=obj.name,
            volume=volume,
            persistentvolumeclaim=str(claim.get("claimName") or ""),
        )
        for volume, claim in _pvc_volumes(obj)
    ]


def _pvc_readonly(obj: ClusterObject) -> list[MetricSample]:
    return [
        sample(
            bool_float(claim.get("readOnly")),
            namespace=obj.namespace,
            pod=obj.name,
            volume=volume,
            persistentvolumeclaim=str(claim.get("claimName") or ""),
        )
        for volume, claim in _pvc_volumes(obj)
    ]


def build_families(allow_labels: LabelAllowList = None) -> list[FamilyGenerator]:
    return [
        family("kube_pod_info", "Information about pod.", _info),
        family("kube_pod_start_time", "Start time in unix timestamp for a pod.", _start_time),
        family("kube_pod_completion_time", "Completion time in unix timestamp for a pod.", _completion_time),
        family("kube_pod_owner", "Information about the Pod's owner.", _owner),
        labels_family("kube_pod_labels", _KEYS, _ids, allow_labels),
        family("kube_pod_created", "Unix creation timestamp", lambda obj: created_samples(obj, _KEYS, _ids(obj))),
        family(
            "kube_pod_status_scheduled_time",
            "Unix timestamp when pod moved into scheduled status",
            _scheduled_time,
        ),
        family("kube_pod_status_phase", "The pods current phase.", _phase),
        family("kube_pod_status_ready", "Describes whether the pod is ready to serve requests.", _condition("Ready")),
        family(
            "kube_pod_status_scheduled",
            "Describes the status of the scheduling process for the pod.",
            _condition("PodScheduled"),
        ),
        family("kube_pod_container_info", "Information about a container in a pod.", _container_info),
        family(
            "kube_pod_container_status_waiting",
            "Describes whether the container is currently in waiting state.",
            _per_container_status(_has_state("waiting")),
        ),
        family(
            "kube_pod_container_status_waiting_reason",
            "Describes the reason the container is currently in waiting state.",
            _per_container_reason(lambda cs: _state(cs, "waiting"), WAITING_REASONS),
        ),
        family(
            "kube_pod_container_status_running",
            "Describes whether the container is currently in running state.",
            _per_container_status(_has_state("running")),
        ),
        family(
            "kube_pod_container_status_terminated",
            "Describes whether the container is currently in terminated state.",
            _per_container_status(_has_state("terminated")),
        ),
        family(
            "kube_pod_container_status_terminated_reason",
            "Describes the reason the container is currently in terminated state.",
            _per_container_reason(lambda cs: _state(cs, "terminated"), TERMINATED_REASONS),
        ),
        family(
            "kube_pod_container_status_last_terminated_reason",
            "Describes the last reason the container was in terminated state.",
            _per_container_reason(
                lambda cs: mapping(mapping(cs.get("lastState")).get("terminated")),
                TERMINATED_REASONS,
            ),
        ),
        family(
            "kube_pod_container_status_ready",
            "Describes whether the containers readiness check succeeded.",
            _per_container_status(lambda cs: bool_float(cs.get("ready"))),
        ),
        family(
            "kube_pod_container_status_restarts_total",
            "The number of container restarts per container.",
            _per_container_status(lambda cs: float(cs.get("restartCount") or 0)),
            kind=MetricKind.COUNTER,
        ),
        family(
            "kube_pod_container_resource_requests",
            "The number of requested request resource by a container.",
            _resources("requests"),
        ),
        family(
            "kube_pod_container_resource_limits",
            "The number of requested limit resource by a container.",
            _resources("limits"),
        ),
        family(
            "kube_pod_container_resource_requests_cpu_cores",
            "The number of requested cpu cores by a container.",
            _single_resource("requests", "cpu"),
        ),
        family(
            "kube_pod_container_resource_requests_memory_bytes",
            "The number of requested memory bytes by a container.",
            _single_resource("requests", "memory"),
        ),
        family(
            "kube_pod_container_resource_limits_cpu_cores",
            "The limit on cpu cores to be used by a container.",
            _single_resource("limits", "cpu"),
        ),
        family(
            "kube_pod_container_resource_limits_memory_bytes",
            "The limit on memory to be used by a container in bytes.",
            _single_resource("limits", "memory"),
        ),
        family(
            "kube_pod_spec_volumes_persistentvolumeclaims_info",
            "Information about persistentvolumeclaim volumes in a pod.",
            _pvc_info,
        ),
        family(
            "kube_pod_spec_volumes_persistentvolumeclaims_readonly",
            "Describes whether a persistentvolumeclaim is mounted read only.",
            _pvc_readonly,
        ),
    ]
