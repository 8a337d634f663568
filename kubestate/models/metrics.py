"""Metric data structures produced by generators and collectors."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from kubestate.models.resources import ClusterObject


class MetricKind(StrEnum):
    """Prometheus value kind of a metric family."""

    GAUGE = "gauge"
    COUNTER = "counter"


@dataclass(frozen=True)
class MetricSample:
    """One sample: ordered label keys, their values and a numeric value."""

    label_keys: tuple[str, ...]
    label_values: tuple[str, ...]
    value: float

    def __post_init__(self) -> None:
        if len(self.label_keys) != len(self.label_values):
            raise ValueError(
                f"label key/value length mismatch: {len(self.label_keys)} keys, {len(self.label_values)} values"
            )
        if len(set(self.label_keys)) != len(self.label_keys):
            raise ValueError(f"duplicate label keys: {self.label_keys}")

    @property
    def labels(self) -> dict[str, str]:
        return dict(zip(self.label_keys, self.label_values, strict=True))


SampleFn = Callable[[ClusterObject], Iterable[MetricSample]]


@dataclass(frozen=True)
class FamilyGenerator:
    """Describes one metric family and how to derive its samples from an object."""

    name: str
    help: str
    kind: MetricKind
    generate: SampleFn


@dataclass
class MetricFamily:
    """A named group of samples sharing help text and kind."""

    name: str
    help: str
    kind: MetricKind = MetricKind.GAUGE
    samples: list[MetricSample] = field(default_factory=list)
