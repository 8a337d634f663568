"""Shared building blocks for metric family generators.

Generators are pure: they read a ClusterObject and return samples, nothing
else. Optional fields that are absent produce no sample; values that cannot
be interpreted (an unparsable quantity or timestamp) are treated as absent.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from kubestate.errors import ObjectDecodeError
from kubestate.models.metrics import FamilyGenerator, MetricKind, MetricSample, SampleFn
from kubestate.models.resources import ClusterObject, parse_timestamp

# None means every object label is surfaced.
LabelAllowList = frozenset[str] | None

NONE_VALUE = "<none>"

_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")

_QUANTITY_RE = re.compile(r"([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)(Ki|Mi|Gi|Ti|Pi|Ei|n|u|m|k|M|G|T|P|E)?")

_QUANTITY_SUFFIXES: dict[str, Decimal] = {
    "": Decimal(1),
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "k": Decimal("1e3"),
    "M": Decimal("1e6"),
    "G": Decimal("1e9"),
    "T": Decimal("1e12"),
    "P": Decimal("1e15"),
    "E": Decimal("1e18"),
    "Ki": Decimal(2**10),
    "Mi": Decimal(2**20),
    "Gi": Decimal(2**30),
    "Ti": Decimal(2**40),
    "Pi": Decimal(2**50),
    "Ei": Decimal(2**60),
}

CONDITION_STATUSES = ("true", "false", "unknown")


def family(name: str, help_text: str, generate: SampleFn, kind: MetricKind = MetricKind.GAUGE) -> FamilyGenerator:
    return FamilyGenerator(name=name, help=help_text, kind=kind, generate=generate)


def sample(value: float, **labels: str) -> MetricSample:
    """Build a sample; keyword order is label order."""
    return MetricSample(tuple(labels), tuple(labels.values()), float(value))


def sample_from(value: float, keys: Sequence[str], values: Sequence[str]) -> MetricSample:
    return MetricSample(tuple(keys), tuple(values), float(value))


def bool_float(value: object) -> float:
    return 1.0 if value else 0.0


def unix_timestamp(value: object) -> float | None:
    """Seconds since the epoch for an API timestamp, None if absent or invalid."""
    try:
        parsed = parse_timestamp(value)
    except ObjectDecodeError:
        return None
    return timestamp_seconds(parsed)


def timestamp_seconds(value: datetime | None) -> float | None:
    if value is None:
        return None
    return float(int(value.timestamp()))


def created_samples(obj: ClusterObject, keys: Sequence[str], values: Sequence[str]) -> list[MetricSample]:
    ts = timestamp_seconds(obj.creation_timestamp)
    if ts is None:
        return []
    return [sample_from(ts, keys, values)]


def sanitize_label_name(name: str) -> str:
    """Replace every character Prometheus does not accept in a label name."""
    return _INVALID_LABEL_CHARS.sub("_", name)


def prefixed_label_pairs(
    prefix: str,
    mapping: Mapping[str, str],
    allow: LabelAllowList = None,
) -> tuple[list[str], list[str]]:
    """Convert a key/value mapping to ``<prefix><key>`` pairs sorted by label name.

    Distinct keys can sanitize to the same name (``app-name`` and
    ``app_name``). Keys are taken in sorted order; the first keeps the plain
    name and each later one gets the lowest free ``_conflict<N>`` suffix.
    """
    chosen: dict[str, str] = {}
    collided: list[tuple[str, str]] = []
    for key in sorted(mapping):
        if allow is not None and key not in allow:
            continue
        name = f"{prefix}{sanitize_label_name(key)}"
        if name in chosen:
            collided.append((name, mapping[key]))
        else:
            chosen[name] = mapping[key]
    for name, value in collided:
        n = 1
        while f"{name}_conflict{n}" in chosen:
            n += 1
        chosen[f"{name}_conflict{n}"] = value
    pairs = sorted(chosen.items())
    return [k for k, _ in pairs], [v for _, v in pairs]


def object_label_pairs(labels: Mapping[str, str], allow: LabelAllowList) -> tuple[list[str], list[str]]:
    """Convert object labels to ``label_<key>`` pairs sorted by sanitized key."""
    return prefixed_label_pairs("label_", labels, allow)


def labels_family(
    name: str,
    base_keys: Sequence[str],
    base_values: Callable[[ClusterObject], Sequence[str]],
    allow: LabelAllowList,
) -> FamilyGenerator:
    """The ``kube_<kind>_labels`` info family.

    *base_values* is a callable returning the identifying label values of an
    object, in the order of *base_keys*.
    """

    def generate(obj: ClusterObject) -> list[MetricSample]:
        keys, values = object_label_pairs(obj.labels, allow)
        return [sample_from(1, [*base_keys, *keys], [*base_values(obj), *values])]

    return family(name, "Kubernetes labels converted to Prometheus labels.", generate)


def condition_samples(
    keys: Sequence[str],
    values: Sequence[str],
    status: object,
) -> list[MetricSample]:
    """Three samples, one per condition status, value 1 on the matching one."""
    current = str(status or "").lower()
    return [
        sample_from(bool_float(current == candidate), [*keys, "condition"], [*values, candidate])
        for candidate in CONDITION_STATUSES
    ]


def parse_quantity(value: object) -> float:
    """Parse a Kubernetes resource quantity (``500m``, ``128Mi``, ``1e3``).

    Raises:
        ValueError: *value* is not a quantity.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid quantity: {value!r}")
    if isinstance(value, int | float):
        return float(value)
    text = str(value).strip()
    match = _QUANTITY_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid quantity: {value!r}")
    number, suffix = match.group(1), match.group(2) or ""
    try:
        return float(Decimal(number) * _QUANTITY_SUFFIXES[suffix])
    except InvalidOperation as exc:
        raise ValueError(f"invalid quantity: {value!r}") from exc


def quantity_or_none(value: object) -> float | None:
    try:
        return parse_quantity(value)
    except ValueError:
        return None


def resource_unit(resource_name: str) -> str:
    if resource_name == "cpu":
        return "core"
    if resource_name in ("memory", "storage", "ephemeral-storage") or resource_name.startswith("hugepages-"):
        return "byte"
    return "integer"


def resource_samples(
    resources: Mapping[str, Any],
    keys: Sequence[str],
    values: Sequence[str],
) -> list[MetricSample]:
    """One sample per resource in a requests/limits/capacity map, sorted by resource name."""
    samples = []
    for name in sorted(resources):
        amount = quantity_or_none(resources[name])
        if amount is None:
            continue
        samples.append(
            sample_from(
                amount,
                [*keys, "resource", "unit"],
                [*values, sanitize_label_name(name), resource_unit(name)],
            )
        )
    return samples


def one_hot(
    keys: Sequence[str],
    values: Sequence[str],
    label: str,
    current: str,
    candidates: Iterable[str],
) -> list[MetricSample]:
    """One sample per known candidate, 1 on *current*, 0 on the rest."""
    return [sample_from(bool_float(current == c), [*keys, label], [*values, c]) for c in candidates]


def mapping(value: object) -> Mapping[str, Any]:
    """*value* if it is a mapping, else an empty one."""
    return value if isinstance(value, Mapping) else {}


def sequence(value: object) -> list[Any]:
    """*value* if it is a list, else an empty one."""
    return value if isinstance(value, list) else []
