"""ConfigMap metric families."""

from __future__ import annotations

from kubestate.generators.base import LabelAllowList, created_samples, family, sample
from kubestate.models.metrics import FamilyGenerator, MetricSample
from kubestate.models.resources import ClusterObject

_KEYS = ("namespace", "configmap")


def _info(obj: ClusterObject) -> list[MetricSample]:
    return [sample(1, namespace=obj.namespace, configmap=obj.name)]


def _resource_version(obj: ClusterObject) -> list[MetricSample]:
    return [sample(1, namespace=obj.namespace, configmap=obj.name, resource_version=obj.resource_version)]


def build_families(allow_labels: LabelAllowList = None) -> list[FamilyGenerator]:
    # ConfigMaps expose no labels family; the allow-list is accepted for a uniform signature.
    return [
        family("kube_configmap_info", "Information about configmap.", _info),
        family(
            "kube_configmap_created",
            "Unix creation timestamp",
            lambda obj: created_samples(obj, _KEYS, (obj.namespace, obj.name)),
        ),
        family(
            "kube_configmap_metadata_resource_version",
            "Resource version representing a specific version of the configmap.",
            _resource_version,
        ),
    ]
