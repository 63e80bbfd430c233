from __future__ import annotations


class CtxLogError(Exception):
    """Base class for errors raised by ctxlog."""


class ConfigurationError(CtxLogError):
    """Invalid settings detected at startup (log level, exclude patterns, ...)."""


class EnrichmentFailure(CtxLogError):
    """The enrichment callback produced something we cannot merge.

    Never escapes the middleware: it is logged at warn and the request carries on
    with its default context.
    """
