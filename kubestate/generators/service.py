"""Service metric families."""

from __future__ import annotations

from kubestate.generators.base import (
    LabelAllowList,
    created_samples,
    family,
    labels_family,
    mapping,
    sample,
    sequence,
)
from kubestate.models.metrics import FamilyGenerator, MetricSample
from kubestate.models.resources import ClusterObject

_KEYS = ("namespace", "service")


def _ids(obj: ClusterObject) -> tuple[str, str]:
    return (obj.namespace, obj.name)


def _info(obj: ClusterObject) -> list[MetricSample]:
    return [
        sample(
            1,
            namespace=obj.namespace,
            service=obj.name,
            cluster_ip=str(obj.spec.get("clusterIP") or ""),
            external_name=str(obj.spec.get("externalName") or ""),
            load_balancer_ip=str(obj.spec.get("loadBalancerIP") or ""),
        )
    ]


def _spec_type(obj: ClusterObject) -> list[MetricSample]:
    return [sample(1, namespace=obj.namespace, service=obj.name, type=str(obj.spec.get("type") or ""))]


def _external_ips(obj: ClusterObject) -> list[MetricSample]:
    return [
        sample(1, namespace=obj.namespace, service=obj.name, external_ip=str(ip))
        for ip in sequence(obj.spec.get("externalIPs"))
    ]


def _load_balancer_ingress(obj: ClusterObject) -> list[MetricSample]:
    ingress = sequence(mapping(obj.status.get("loadBalancer")).get("ingress"))
    return [
        sample(
            1,
            namespace=obj.namespace,
            service=obj.name,
            ip=str(mapping(entry).get("ip") or ""),
            hostname=str(mapping(entry).get("hostname") or ""),
        )
        for entry in ingress
    ]


def build_families(allow_labels: LabelAllowList = None) -> list[FamilyGenerator]:
    return [
        family("kube_service_info", "Information about service.", _info),
        family(
            "kube_service_created",
            "Unix creation timestamp",
            lambda obj: created_samples(obj, _KEYS, _ids(obj)),
        ),
        family("kube_service_spec_type", "Type about service.", _spec_type),
        labels_family("kube_service_labels", _KEYS, _ids, allow_labels),
        family(
            "kube_service_spec_external_ip",
            "Service external ips. One series for each ip",
            _external_ips,
        ),
        family(
            "kube_service_status_load_balancer_ingress",
            "Service load balancer ingress status",
            _load_balancer_ingress,
        ),
    ]
