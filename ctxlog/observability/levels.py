from __future__ import annotations

import logging
from enum import Enum


class LogLevel(str, Enum):
    VERBOSE = "verbose"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @classmethod
    def parse(cls, value: "LogLevel | str") -> "LogLevel":
        if isinstance(value, LogLevel):
            return value
        normalized = str(value).strip().lower()
        if normalized == "warning":
            normalized = "warn"
        return cls(normalized)

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def stdlib_level(self) -> int:
        return _STDLIB_LEVELS[self]

    @property
    def method_name(self) -> str:
        """Name of the structlog/stdlib method used to forward this level."""
        return _METHOD_NAMES[self]

    def enables(self, other: "LogLevel") -> bool:
        return other.severity >= self.severity


_SEVERITY = {
    LogLevel.VERBOSE: 0,
    LogLevel.DEBUG: 1,
    LogLevel.INFO: 2,
    LogLevel.WARN: 3,
    LogLevel.ERROR: 4,
}

# stdlib has no verbose level wired into structlog's method table, so verbose
# records travel through debug() and keep level="verbose" in the record.
_STDLIB_LEVELS = {
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

_METHOD_NAMES = {
    LogLevel.VERBOSE: "debug",
    LogLevel.DEBUG: "debug",
    LogLevel.INFO: "info",
    LogLevel.WARN: "warning",
    LogLevel.ERROR: "error",
}


_MIN_LEVEL: LogLevel = LogLevel.INFO


def set_min_level(level: LogLevel | str) -> None:
    global _MIN_LEVEL
    _MIN_LEVEL = LogLevel.parse(level)


def get_min_level() -> LogLevel:
    return _MIN_LEVEL
