from __future__ import annotations

from collections.abc import Iterable

from ctxlog.errors import ConfigurationError


def validate_pattern(pattern: str) -> str:
    if not isinstance(pattern, str) or not pattern:
        raise ConfigurationError(f"Invalid exclude pattern {pattern!r}: must be a non-empty string")
    if not pattern.startswith("/"):
        raise ConfigurationError(f"Invalid exclude pattern {pattern!r}: must start with '/'")
    if any(ch.isspace() for ch in pattern):
        raise ConfigurationError(f"Invalid exclude pattern {pattern!r}: whitespace is not allowed")
    if "*" in pattern[:-1]:
        raise ConfigurationError(f"Invalid exclude pattern {pattern!r}: '*' is only allowed at the end")
    return pattern


class ExclusionMatcher:
    """Decides which request paths skip context tracking entirely.

    ``/health`` matches ``/health`` and ``/health/`` only. ``/internal/*`` matches
    ``/internal`` and everything below it. ``/static*`` is a raw prefix match.
    """

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns: tuple[str, ...] = tuple(validate_pattern(p) for p in patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def is_excluded(self, path: str) -> bool:
        for pattern in self._patterns:
            if _matches(pattern, path):
                return True
        return False


def _matches(pattern: str, path: str) -> bool:
    if pattern.endswith("/*"):
        base = pattern[:-2]
        return path == base or path.startswith(base + "/")
    if pattern.endswith("*"):
        return path.startswith(pattern[:-1])
    if path == pattern:
        return True
    # One trailing slash is tolerated on either side, never more.
    if pattern.endswith("/"):
        return len(pattern) > 1 and path == pattern[:-1]
    return path == pattern + "/"
