"""Request-scoped context propagation for structured logs."""

from ctxlog.errors import ConfigurationError, CtxLogError, EnrichmentFailure
from ctxlog.observability.context import ContextStore, context_store, get_context, update_context
from ctxlog.observability.exclusion import ExclusionMatcher
from ctxlog.observability.levels import LogLevel
from ctxlog.observability.logger import ContextLogger, get_logger
from ctxlog.observability.middleware import ExecutionContext, RequestContextMiddleware

__all__ = [
    "ConfigurationError",
    "ContextLogger",
    "ContextStore",
    "CtxLogError",
    "EnrichmentFailure",
    "ExclusionMatcher",
    "ExecutionContext",
    "LogLevel",
    "RequestContextMiddleware",
    "context_store",
    "get_context",
    "get_logger",
    "update_context",
]
