"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubestate.models.resources import ALL_NAMESPACES, DEFAULT_COLLECTORS


@dataclass
class CollectorConfig:
    """Which resources are mirrored and how.

    ``label_allowlist`` maps a resource identifier to the object label keys
    surfaced on its ``*_labels`` family. Resources absent from the map expose
    every label; ``"*"`` in a list also means every label.
    """

    collectors: list[str] = field(default_factory=lambda: list(DEFAULT_COLLECTORS))
    namespaces: list[str] = field(default_factory=lambda: [ALL_NAMESPACES])
    label_allowlist: dict[str, list[str]] = field(default_factory=dict)
    resync_period_seconds: int = 300
    sync_timeout_seconds: int = 30


@dataclass
class FilterConfig:
    """Metric family allow/deny patterns."""

    whitelist: list[str] = field(default_factory=list)
    blacklist: list[str] = field(default_factory=list)


@dataclass
class APIConfig:
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    enable_gzip: bool = False


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class KubeStateConfig:
    """Top-level kubestate configuration."""

    kubeconfig: str = ""
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
