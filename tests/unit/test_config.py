"""Unit tests for environment configuration loading and the CLI."""

from __future__ import annotations

import asyncio
import runpy
import sys

import pytest
from click.testing import CliRunner

from kubestate.cache.backoff import Backoff
from kubestate.cli import cli
from kubestate.cli.main import apply_overrides
from kubestate.config import load_config, parse_label_allowlist, split_list
from kubestate.errors import ConfigError
from kubestate.models.resources import DEFAULT_COLLECTORS

# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_defaults(self) -> None:
        config = load_config({})
        assert config.collector.collectors == list(DEFAULT_COLLECTORS)
        assert config.collector.namespaces == [""]
        assert config.collector.resync_period_seconds == 300
        assert config.api.port == 8080
        assert config.api.enable_gzip is False
        assert config.log.level == "info"

    def test_overrides(self) -> None:
        config = load_config(
            {
                "KSM_COLLECTORS": "pods, services",
                "KSM_NAMESPACES": "default,kube-system",
                "KSM_METRIC_BLACKLIST": "kube_pod_owner",
                "KSM_LABELS_ALLOWLIST": "pods=[app,team],nodes=[*]",
                "KSM_PORT": "9090",
                "KSM_ENABLE_GZIP": "true",
                "KSM_LOG_LEVEL": "DEBUG",
            }
        )
        assert config.collector.collectors == ["pods", "services"]
        assert config.collector.namespaces == ["default", "kube-system"]
        assert config.filters.blacklist == ["kube_pod_owner"]
        assert config.collector.label_allowlist == {"pods": ["app", "team"], "nodes": ["*"]}
        assert config.api.port == 9090
        assert config.api.enable_gzip is True
        assert config.log.level == "debug"

    @pytest.mark.parametrize(("raw", "expected"), [("1", 10), ("600", 600), ("999999", 86400)])
    def test_resync_period_clamped(self, raw: str, expected: int) -> None:
        assert load_config({"KSM_RESYNC_PERIOD": raw}).collector.resync_period_seconds == expected

    @pytest.mark.parametrize(
        "env",
        [
            {"KSM_METRIC_WHITELIST": "a", "KSM_METRIC_BLACKLIST": "b"},
            {"KSM_PORT": "eighty"},
            {"KSM_PORT": "70000"},
            {"KSM_LOG_LEVEL": "loud"},
            {"KSM_LABELS_ALLOWLIST": "pods=app"},
        ],
    )
    def test_invalid_rejected(self, env: dict[str, str]) -> None:
        with pytest.raises(ConfigError):
            load_config(env)


class TestParsers:
    def test_split_list_drops_blanks(self) -> None:
        assert split_list(" a, ,b,") == ["a", "b"]

    def test_label_allowlist_empty(self) -> None:
        assert parse_label_allowlist("") == {}

    def test_label_allowlist_spaces(self) -> None:
        assert parse_label_allowlist(" pods = [ app , team ] , nodes=[] ") == {"pods": ["app", "team"], "nodes": []}

    @pytest.mark.parametrize("value", ["pods=[app", "pods=[app]nodes=[x]", "=[x]"])
    def test_label_allowlist_malformed(self, value: str) -> None:
        with pytest.raises(ConfigError):
            parse_label_allowlist(value)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCli:
    def test_collectors_lists_identifiers(self) -> None:
        result = CliRunner().invoke(cli, ["collectors"])
        assert result.exit_code == 0
        assert [line.split()[0] for line in result.output.splitlines()] == list(DEFAULT_COLLECTORS)
        assert "cluster" in result.output

    def test_serve_rejects_conflicting_filters(self) -> None:
        result = CliRunner().invoke(cli, ["serve", "--metric-whitelist", "a", "--metric-blacklist", "b"])
        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    def test_no_command_runs_serve_from_environment(self) -> None:
        env = {"KSM_METRIC_WHITELIST": "a", "KSM_METRIC_BLACKLIST": "b"}
        result = CliRunner().invoke(cli, [], env=env)
        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    def test_module_entry_point(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        monkeypatch.setattr(sys, "argv", ["kubestate", "collectors"])
        with pytest.raises(SystemExit) as exc_info:
            runpy.run_module("kubestate", run_name="__main__", alter_sys=True)
        assert exc_info.value.code == 0
        assert "deployments" in capsys.readouterr().out

    def test_apply_overrides(self) -> None:
        config = apply_overrides(
            load_config({"KSM_METRIC_WHITELIST": "kube_pod_info"}),
            {"port": 9999, "namespaces": "", "enable_gzip": False, "log_level": "ERROR", "collectors": None},
        )
        assert config.api.port == 9999
        assert config.collector.namespaces == [""]
        assert config.api.enable_gzip is False
        assert config.log.level == "error"
        assert config.collector.collectors == list(DEFAULT_COLLECTORS)
        assert config.filters.whitelist == ["kube_pod_info"]


# ---------------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------------


async def _delays(backoff: Backoff, failures: int) -> list[float]:
    """Delays the retry policy sleeps for when the first *failures* attempts fail."""
    delays: list[float] = []

    async def record(delay: float) -> None:
        delays.append(delay)

    attempts = 0
    async for attempt in backoff.retrying(sleep=record):
        with attempt:
            attempts += 1
            if attempts <= failures:
                raise ConnectionError("refused")
    return delays


class TestBackoff:
    async def test_doubles_until_cap(self) -> None:
        delays = await _delays(Backoff(initial=0.8, factor=2.0, maximum=30.0, jitter=0.0), 8)
        assert delays == [0.8, 1.6, 3.2, 6.4, 12.8, 25.6, 30.0, 30.0]

    async def test_jitter_bounds(self) -> None:
        for delay in await _delays(Backoff(initial=1.0, maximum=5.0, jitter=0.4), 50):
            assert 1.0 <= delay <= 5.0
        first = await _delays(Backoff(initial=1.0, maximum=5.0, jitter=0.4), 1)
        assert 1.0 <= first[0] <= 1.4

    async def test_fresh_policy_starts_over(self) -> None:
        backoff = Backoff(jitter=0.0)
        assert await _delays(backoff, 3) == [0.8, 1.6, 3.2]
        assert await _delays(backoff, 1) == [0.8]

    async def test_many_attempts_do_not_overflow(self) -> None:
        delays = await _delays(Backoff(), 2000)
        assert max(delays) <= 30.0

    async def test_cancellation_is_not_retried(self) -> None:
        recorded: list[float] = []

        async def record(delay: float) -> None:
            recorded.append(delay)

        with pytest.raises(asyncio.CancelledError):
            async for attempt in Backoff().retrying(sleep=record):
                with attempt:
                    raise asyncio.CancelledError
        assert recorded == []

    @pytest.mark.parametrize(
        "kwargs",
        [{"initial": 0}, {"initial": 5, "maximum": 1}, {"factor": 0.5}, {"jitter": -1}],
    )
    def test_invalid_bounds(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            Backoff(**kwargs)
