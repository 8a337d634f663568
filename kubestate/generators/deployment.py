"""Deployment metric families.

Replica counts are omitted when the field is absent from the object rather
than reported as zero.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from kubestate.generators.base import (
    LabelAllowList,
    bool_float,
    created_samples,
    family,
    labels_family,
    sample_from,
)
from kubestate.models.metrics import FamilyGenerator, MetricSample
from kubestate.models.resources import ClusterObject

_KEYS = ("namespace", "deployment")


def _ids(obj: ClusterObject) -> tuple[str, str]:
    return (obj.namespace, obj.name)


def _numeric(
    section: Callable[[ClusterObject], Mapping[str, Any]],
    field: str,
) -> Callable[[ClusterObject], list[MetricSample]]:
    def generate(obj: ClusterObject) -> list[MetricSample]:
        value = section(obj).get(field)
        if value is None or isinstance(value, bool):
            return []
        try:
            number = float(value)
        except (TypeError, ValueError):
            return []
        return [sample_from(number, _KEYS, _ids(obj))]

    return generate


def _status(obj: ClusterObject) -> Mapping[str, Any]:
    return obj.status


def _spec(obj: ClusterObject) -> Mapping[str, Any]:
    return obj.spec


def _paused(obj: ClusterObject) -> list[MetricSample]:
    return [sample_from(bool_float(obj.spec.get("paused")), _KEYS, _ids(obj))]


def _generation(obj: ClusterObject) -> list[MetricSample]:
    if obj.generation is None:
        return []
    return [sample_from(obj.generation, _KEYS, _ids(obj))]


def build_families(allow_labels: LabelAllowList = None) -> list[FamilyGenerator]:
    return [
        family(
            "kube_deployment_created",
            "Unix creation timestamp",
            lambda obj: created_samples(obj, _KEYS, _ids(obj)),
        ),
        family(
            "kube_deployment_status_replicas",
            "The number of replicas per deployment.",
            _numeric(_status, "replicas"),
        ),
        family(
            "kube_deployment_status_replicas_available",
            "The number of available replicas per deployment.",
            _numeric(_status, "availableReplicas"),
        ),
        family(
            "kube_deployment_status_replicas_unavailable",
            "The number of unavailable replicas per deployment.",
            _numeric(_status, "unavailableReplicas"),
        ),
        family(
            "kube_deployment_status_replicas_updated",
            "The number of updated replicas per deployment.",
            _numeric(_status, "updatedReplicas"),
        ),
        family(
            "kube_deployment_status_observed_generation",
            "The generation observed by the deployment controller.",
            _numeric(_status, "observedGeneration"),
        ),
        family(
            "kube_deployment_spec_replicas",
            "Number of desired pods for a deployment.",
            _numeric(_spec, "replicas"),
        ),
        family(
            "kube_deployment_spec_paused",
            "Whether the deployment is paused and will not be processed by the deployment controller.",
            _paused,
        ),
        family(
            "kube_deployment_metadata_generation",
            "Sequence number representing a specific generation of the desired state.",
            _generation,
        ),
        labels_family("kube_deployment_labels", _KEYS, _ids, allow_labels),
    ]
