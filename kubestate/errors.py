"""Error taxonomy for kubestate.

ConfigError         -- invalid or mutually exclusive configuration; fatal at startup.
WatchError          -- transient list/watch failure; retried inside the store.
ObjectDecodeError   -- a single malformed object; logged and skipped.
SerializationError  -- inconsistency while rendering a scrape; surfaced as 5xx.
"""

from __future__ import annotations


class KubeStateError(Exception):
    """Base class for all kubestate errors."""


class ConfigError(KubeStateError):
    """Raised when configuration is invalid. The process must not start serving."""


class WatchError(KubeStateError):
    """Raised when a list or watch call against the cluster API fails."""

    def __init__(self, resource: str, message: str, *, gone: bool = False) -> None:
        super().__init__(f"{resource}: {message}")
        self.resource = resource
        self.gone = gone


class ObjectDecodeError(KubeStateError):
    """Raised when a cluster object cannot be decoded into a ClusterObject."""


class SerializationError(KubeStateError):
    """Raised when a metric snapshot cannot be rendered."""
