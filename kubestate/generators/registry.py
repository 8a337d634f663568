"""Maps every ResourceType to its metric families.

The mapping is fixed at import time; the Builder resolves configured
identifiers against it once, at construction.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from kubestate.generators import configmap, deployment, namespace, node, pod, service
from kubestate.generators.base import LabelAllowList
from kubestate.models.metrics import FamilyGenerator, MetricSample
from kubestate.models.resources import ClusterObject, ResourceType

FamilyBuilder = Callable[[LabelAllowList], list[FamilyGenerator]]

FAMILY_BUILDERS: dict[ResourceType, FamilyBuilder] = {
    ResourceType.CONFIGMAPS: configmap.build_families,
    ResourceType.DEPLOYMENTS: deployment.build_families,
    ResourceType.NAMESPACES: namespace.build_families,
    ResourceType.NODES: node.build_families,
    ResourceType.PODS: pod.build_families,
    ResourceType.SERVICES: service.build_families,
}


class MetricGenerator:
    """Ordered metric families for one resource type.

    ``generate`` is pure: the same object always yields the same families,
    in registration order, with the same samples in the same order.
    """

    def __init__(self, resource: ResourceType, families: Sequence[FamilyGenerator]) -> None:
        names = [f.name for f in families]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate metric families for {resource}: {duplicates}")
        prefix = f"kube_{resource.kind.lower()}_"
        foreign = [n for n in names if not n.startswith(prefix)]
        if foreign:
            raise ValueError(f"metric families for {resource} must start with {prefix!r}: {foreign}")
        self.resource = resource
        self._families = tuple(families)

    @property
    def families(self) -> tuple[FamilyGenerator, ...]:
        return self._families

    def generate(self, obj: ClusterObject) -> list[tuple[FamilyGenerator, list[MetricSample]]]:
        return [(f, list(f.generate(obj))) for f in self._families]


def generator_for(resource: ResourceType, allow_labels: LabelAllowList = None) -> MetricGenerator:
    return MetricGenerator(resource, FAMILY_BUILDERS[resource](allow_labels))
