"""Unit tests for the text exposition format."""

from __future__ import annotations

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from kubestate.api.exposition import escape_label_value, format_value, render_families, render_sample
from kubestate.models.metrics import MetricFamily, MetricSample


class TestFormatValue:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1.0, "1"),
            (0.0, "0"),
            (0.25, "0.25"),
            (100.0, "100"),
            (1518998400.0, "1518998400"),
            (8589934592.0, "8589934592"),
            (-3.5, "-3.5"),
            (1e-7, "0.0000001"),
            (math.nan, "NaN"),
            (math.inf, "+Inf"),
            (-math.inf, "-Inf"),
        ],
    )
    def test_values(self, value: float, expected: str) -> None:
        assert format_value(value) == expected

    @given(st.floats(allow_nan=False, allow_infinity=False, min_value=-1e15, max_value=1e15))
    def test_round_trips_through_float(self, value: float) -> None:
        assert float(format_value(value)) == value


class TestEscaping:
    def test_label_value_escapes(self) -> None:
        assert escape_label_value('a"b\\c\nd') == 'a\\"b\\\\c\\nd'

    @given(st.text())
    def test_escaped_value_has_no_raw_newline_or_bare_quote(self, value: str) -> None:
        escaped = escape_label_value(value)
        assert "\n" not in escaped
        # every quote is preceded by an odd run of backslashes
        for i, ch in enumerate(escaped):
            if ch == '"':
                run = len(escaped[:i]) - len(escaped[:i].rstrip("\\"))
                assert run % 2 == 1


class TestRender:
    def test_sample_with_labels(self) -> None:
        s = MetricSample(("namespace", "service"), ("default", "web"), 1.0)
        assert render_sample("kube_service_info", s) == 'kube_service_info{namespace="default",service="web"} 1'

    def test_sample_without_labels(self) -> None:
        assert render_sample("up", MetricSample((), (), 1.0)) == "up 1"

    def test_family_help_then_samples(self) -> None:
        families = [
            MetricFamily("kube_a", "First.", samples=[MetricSample(("x",), ("1",), 2.0)]),
            MetricFamily("kube_b", "Second."),
        ]
        assert render_families(families) == '# HELP kube_a First.\nkube_a{x="1"} 2\n# HELP kube_b Second.\n'

    def test_no_families_renders_empty(self) -> None:
        assert render_families([]) == ""
