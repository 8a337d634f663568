"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

from kubestate.errors import ConfigError
from kubestate.models.config import (
    APIConfig,
    CollectorConfig,
    FilterConfig,
    KubeStateConfig,
    LogConfig,
)
from kubestate.models.resources import ALL_NAMESPACES, DEFAULT_COLLECTORS

# pods=[app,team],nodes=[*]
_ALLOWLIST_ENTRY = re.compile(r"\s*([a-z]+)\s*=\s*\[([^\]]*)\]\s*")


def _env(env: Mapping[str, str], key: str, default: str = "") -> str:
    return env.get(f"KSM_{key}", default)


def _env_bool(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    val = _env(env, key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(
    env: Mapping[str, str],
    key: str,
    default: int,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    raw = _env(env, key, str(default))
    try:
        val = int(raw)
    except ValueError as exc:
        raise ConfigError(f"KSM_{key} must be an integer, got {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def split_list(value: str) -> list[str]:
    """Split a comma-separated value, dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_label_allowlist(value: str) -> dict[str, list[str]]:
    """Parse ``pods=[app,team],nodes=[*]`` into a mapping.

    Raises:
        ConfigError: the value does not follow the ``resource=[k1,k2]`` format.
    """
    result: dict[str, list[str]] = {}
    remaining = value.strip()
    while remaining:
        match = _ALLOWLIST_ENTRY.match(remaining)
        if match is None:
            raise ConfigError(f"invalid label allow-list {value!r}; expected resource=[key,...] entries")
        result[match.group(1)] = split_list(match.group(2))
        remaining = remaining[match.end() :]
        if remaining.startswith(","):
            remaining = remaining[1:]
        elif remaining:
            raise ConfigError(f"invalid label allow-list {value!r}; entries must be comma separated")
    return result


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {sorted(valid)}")
    return value.lower()


def _validate_port(value: int) -> int:
    if not 1 <= value <= 65535:
        raise ConfigError(f"Invalid port: {value}")
    return value


def load_config(env: Mapping[str, str] | None = None) -> KubeStateConfig:
    """Load configuration from KSM_* environment variables.

    Raises:
        ConfigError: a value is malformed, or both metric whitelist and
            blacklist are set.
    """
    env = os.environ if env is None else env
    whitelist = split_list(_env(env, "METRIC_WHITELIST"))
    blacklist = split_list(_env(env, "METRIC_BLACKLIST"))
    if whitelist and blacklist:
        raise ConfigError("KSM_METRIC_WHITELIST and KSM_METRIC_BLACKLIST are mutually exclusive")

    return KubeStateConfig(
        kubeconfig=_env(env, "KUBECONFIG"),
        collector=CollectorConfig(
            collectors=split_list(_env(env, "COLLECTORS", ",".join(DEFAULT_COLLECTORS))),
            namespaces=split_list(_env(env, "NAMESPACES")) or [ALL_NAMESPACES],
            label_allowlist=parse_label_allowlist(_env(env, "LABELS_ALLOWLIST")),
            resync_period_seconds=_env_int(env, "RESYNC_PERIOD", 300, min_val=10, max_val=86400),
            sync_timeout_seconds=_env_int(env, "SYNC_TIMEOUT", 30, min_val=0, max_val=3600),
        ),
        filters=FilterConfig(whitelist=whitelist, blacklist=blacklist),
        api=APIConfig(
            host=_env(env, "HOST", "0.0.0.0"),
            port=_validate_port(_env_int(env, "PORT", 8080)),
            enable_gzip=_env_bool(env, "ENABLE_GZIP", False),
        ),
        log=LogConfig(
            level=_validate_log_level(_env(env, "LOG_LEVEL", "info")),
        ),
    )
