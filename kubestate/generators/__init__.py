"""Object-to-metric translation.

One module per resource type (``pod``, ``service``, ...) exposes
``build_families(allow_labels)``; ``registry`` binds them to ResourceType and
wraps them in a MetricGenerator.
"""

from kubestate.generators.registry import FAMILY_BUILDERS, MetricGenerator, generator_for

__all__ = ["FAMILY_BUILDERS", "MetricGenerator", "generator_for"]
