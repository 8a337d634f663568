"""Namespace metric families."""

from __future__ import annotations

from kubestate.generators.base import (
    LabelAllowList,
    created_samples,
    family,
    labels_family,
    one_hot,
    prefixed_label_pairs,
    sample_from,
)
from kubestate.models.metrics import FamilyGenerator, MetricSample
from kubestate.models.resources import ClusterObject

_KEYS = ("namespace",)

NAMESPACE_PHASES = ("Active", "Terminating")


def _ids(obj: ClusterObject) -> tuple[str]:
    return (obj.name,)


def _annotations(obj: ClusterObject) -> list[MetricSample]:
    keys, values = prefixed_label_pairs("annotation_", obj.annotations)
    return [sample_from(1, [*_KEYS, *keys], [obj.name, *values])]


def _phase(obj: ClusterObject) -> list[MetricSample]:
    phase = str(obj.status.get("phase") or "")
    if not phase:
        return []
    return one_hot(_KEYS, _ids(obj), "phase", phase, NAMESPACE_PHASES)


def build_families(allow_labels: LabelAllowList = None) -> list[FamilyGenerator]:
    return [
        family("kube_namespace_created", "Unix creation timestamp", lambda obj: created_samples(obj, _KEYS, _ids(obj))),
        labels_family("kube_namespace_labels", _KEYS, _ids, allow_labels),
        family("kube_namespace_annotations", "Kubernetes annotations converted to Prometheus labels.", _annotations),
        family("kube_namespace_status_phase", "kubernetes namespace status phase.", _phase),
    ]
