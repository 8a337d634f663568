"""Metric family allow/deny filter.

Patterns are anchored regular expressions. Metric names only contain
``[a-zA-Z0-9_:]``, so a plain family name matches exactly itself.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from kubestate.errors import ConfigError


@dataclass(frozen=True)
class FilterSet:
    """Immutable predicate deciding which families reach exposition.

    Allow-mode and deny-mode are mutually exclusive; supplying both is
    rejected. With neither, every family is included.
    """

    allow: frozenset[str] = frozenset()
    deny: frozenset[str] = frozenset()
    _allow_patterns: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)
    _deny_patterns: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        allow = _normalize(self.allow)
        deny = _normalize(self.deny)
        if allow and deny:
            raise ConfigError("metric whitelist and blacklist are mutually exclusive; configure only one of them")
        object.__setattr__(self, "allow", allow)
        object.__setattr__(self, "deny", deny)
        object.__setattr__(self, "_allow_patterns", _compile(allow))
        object.__setattr__(self, "_deny_patterns", _compile(deny))

    @classmethod
    def from_lists(cls, allow: Iterable[str] = (), deny: Iterable[str] = ()) -> FilterSet:
        return cls(allow=frozenset(allow), deny=frozenset(deny))

    @property
    def is_allow_mode(self) -> bool:
        return bool(self.allow)

    def is_included(self, family_name: str) -> bool:
        if self._allow_patterns:
            return any(p.fullmatch(family_name) for p in self._allow_patterns)
        return not any(p.fullmatch(family_name) for p in self._deny_patterns)

    def status(self) -> str:
        """Human-readable description for startup logging."""
        if self.allow:
            return f"whitelisting the following metrics: {', '.join(sorted(self.allow))}"
        if self.deny:
            return f"blacklisting the following metrics: {', '.join(sorted(self.deny))}"
        return "all metrics are exposed"


def _normalize(patterns: Iterable[str]) -> frozenset[str]:
    return frozenset(p.strip() for p in patterns if p.strip())


def _compile(patterns: frozenset[str]) -> tuple[re.Pattern[str], ...]:
    compiled = []
    for pattern in sorted(patterns):
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ConfigError(f"invalid metric filter pattern {pattern!r}: {exc}") from exc
    return tuple(compiled)
