"""Request-scoped context propagation and structured logging.

The scope lives in a single ContextVar holding a dict, so every task, awaited
coroutine or threadpool hop spawned while a request is in flight sees (and can
mutate) the same mapping, while concurrent requests never share one.
"""

from ctxlog.observability.context import ContextStore, context_store, get_context, update_context
from ctxlog.observability.levels import LogLevel
from ctxlog.observability.logger import ContextLogger, get_logger

__all__ = [
    "ContextLogger",
    "ContextStore",
    "LogLevel",
    "context_store",
    "get_context",
    "get_logger",
    "update_context",
]
