from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog

from ctxlog.observability.context import context_store
from ctxlog.observability.levels import LogLevel, get_min_level, set_min_level


_CONFIGURED = False


def merge_request_context(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Stamp foreign (plain stdlib) records with the current request context."""

    for key, value in context_store.get().items():
        event_dict.setdefault(key, value)
    return event_dict


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    fmt: str = "json",
    stream: TextIO | None = None,
    force: bool = False,
) -> None:
    """Configure structlog + stdlib logging for JSON output.

    Safe to call multiple times: the handler setup happens once (unless ``force``),
    the minimum level is applied on every call.
    """

    global _CONFIGURED
    level = LogLevel.parse(level)
    set_min_level(level)

    if _CONFIGURED and structlog.is_configured() and not force:
        _apply_stdlib_level(level.stdlib_level)
        return

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp")

    foreign_pre_chain: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        merge_request_context,
        timestamper,
    ]

    structlog.configure(
        processors=[
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            # Let ProcessorFormatter render stdlib log records too.
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # ContextLogger resolves its logger per call so reconfiguration (and
        # structlog.testing.capture_logs) takes effect immediately.
        cache_logger_on_first_use=False,
    )

    if fmt == "console":
        renderers: list[Any] = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(),
        ]
    else:
        renderers = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ]

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=renderers,
        foreign_pre_chain=foreign_pre_chain,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]

    # Keep uvicorn's own loggers consistent with our handler.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.propagate = False

    _apply_stdlib_level(level.stdlib_level)
    _CONFIGURED = True


def _apply_stdlib_level(stdlib_level: int) -> None:
    logging.getLogger().setLevel(stdlib_level)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(stdlib_level)


def ensure_logging_configured() -> None:
    """Install the JSON setup when nothing configured structlog yet.

    Keeps the record shape (``level`` as ctxlog names it) for hosts that mount the
    middleware or use ContextLogger without calling ``configure_logging`` first.
    """

    if not structlog.is_configured():
        configure_logging(get_min_level(), force=True)
