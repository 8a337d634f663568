"""Text exposition of metric families.

Each family renders as one ``# HELP`` line followed by one line per sample::

    # HELP kube_service_info Information about service.
    kube_service_info{namespace="default",service="service0"} 1

Labels keep the family's fixed key order. Values use the shortest plain
decimal form (``1``, ``0.25``, ``1518998400``) or ``NaN``/``+Inf``/``-Inf``.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from decimal import Decimal

from kubestate.errors import SerializationError
from kubestate.models.metrics import MetricFamily, MetricSample


def format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return format(Decimal(repr(float(value))).normalize(), "f")


def escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def render_sample(name: str, sample: MetricSample) -> str:
    try:
        value = format_value(sample.value)
        if not sample.label_keys:
            return f"{name} {value}"
        pairs = zip(sample.label_keys, sample.label_values, strict=True)
        labels = ",".join(f'{key}="{escape_label_value(val)}"' for key, val in pairs)
    except (TypeError, ValueError, AttributeError) as exc:
        raise SerializationError(f"cannot render sample of {name}: {exc}") from exc
    return f"{name}{{{labels}}} {value}"


def render_families(families: Iterable[MetricFamily]) -> str:
    lines: list[str] = []
    for family in families:
        lines.append(f"# HELP {family.name} {escape_help(family.help)}")
        lines.extend(render_sample(family.name, sample) for sample in family.samples)
    if not lines:
        return ""
    return "\n".join(lines) + "\n"
