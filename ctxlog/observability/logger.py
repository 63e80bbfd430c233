from __future__ import annotations

import json
import traceback
from collections.abc import Mapping
from typing import Any

import structlog

from ctxlog.observability.context import ContextStore, context_store
from ctxlog.observability.levels import LogLevel, get_min_level, set_min_level
from ctxlog.observability.logging import ensure_logging_configured

__all__ = ["ContextLogger", "describe_error", "get_logger", "get_min_level", "set_min_level"]

# Keys owned by the record itself; scope or call-site data cannot override them.
RESERVED_KEYS = frozenset({"level", "message", "event", "timestamp"})


def _is_json_safe(value: Any) -> bool:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


def describe_error(error: Any) -> dict[str, Any]:
    """Normalize an exception (or any other error payload) into record fields."""

    fields: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if isinstance(error, BaseException):
        fields["stack"] = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return fields


class ContextLogger:
    """Structured logger that stamps every record with the current request context.

    Field precedence, lowest first: category label, request scope, ``bindings``,
    keyword fields.

        logger = ContextLogger("PaymentService")
        update_context(user_id="u1")
        logger.info("processing", amount=12)
        # {"level": "info", "message": "processing", "logger": "PaymentService",
        #  "user_id": "u1", "amount": 12, "correlation_id": ..., "timestamp": ...}

    ``sink`` is any structlog-style logger (``debug``/``info``/``warning``/``error``
    taking ``(event, **fields)``). By default records go through structlog and the
    stdlib handler set up by ``configure_logging``; stdlib handlers report their own
    write errors through ``logging.Handler.handleError``, so the retry in ``_emit``
    matters for sinks that raise.
    """

    def __init__(self, category: str, store: ContextStore | None = None, sink: Any | None = None) -> None:
        self.category = category
        self._store = store or context_store
        self._sink = sink
        self._logger = sink if sink is not None else structlog.get_logger(category)

    def update_context(self, partial: Mapping[str, Any] | None = None, **fields: Any) -> None:
        self._store.merge(partial, **fields)

    def verbose(self, message: str, bindings: Mapping[str, Any] | None = None, **fields: Any) -> None:
        self._write(LogLevel.VERBOSE, message, bindings, fields)

    def debug(self, message: str, bindings: Mapping[str, Any] | None = None, **fields: Any) -> None:
        self._write(LogLevel.DEBUG, message, bindings, fields)

    def info(self, message: str, bindings: Mapping[str, Any] | None = None, **fields: Any) -> None:
        self._write(LogLevel.INFO, message, bindings, fields)

    log = info

    def warn(self, message: str, bindings: Mapping[str, Any] | None = None, **fields: Any) -> None:
        self._write(LogLevel.WARN, message, bindings, fields)

    warning = warn

    def error(
        self,
        message: str,
        error: Any | None = None,
        bindings: Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> None:
        if error is not None:
            fields = {**describe_error(error), **fields}
        self._write(LogLevel.ERROR, message, bindings, fields)

    def _write(
        self,
        level: LogLevel,
        message: str,
        bindings: Mapping[str, Any] | None,
        fields: Mapping[str, Any],
    ) -> None:
        if not get_min_level().enables(level):
            return

        record: dict[str, Any] = {"logger": self.category}
        record.update(self._store.get())
        if bindings:
            record.update(bindings)
        record.update(fields)
        for key in RESERVED_KEYS:
            record.pop(key, None)

        self._emit(level, message, record)

    def _emit(self, level: LogLevel, message: str, record: dict[str, Any]) -> None:
        if self._sink is None:
            # structlog's default chain would rewrite "level" from the method name.
            ensure_logging_configured()

        method = getattr(self._logger, level.method_name)
        try:
            method(message, level=level.value, **record)
            return
        except Exception:  # noqa: BLE001
            pass

        # Retry without the fields the sink is most likely to choke on.
        safe = {key: value for key, value in record.items() if _is_json_safe(value)}
        try:
            method(message, level=level.value, **safe)
        except Exception:  # noqa: BLE001
            # Logging must never break the request; the record is dropped.
            pass


def get_logger(category: str) -> ContextLogger:
    return ContextLogger(category)
