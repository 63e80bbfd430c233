from __future__ import annotations

import asyncio
import inspect
import re
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Union

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers, MutableHeaders

from ctxlog.config import Settings, get_settings
from ctxlog.errors import EnrichmentFailure
from ctxlog.observability.context import ContextStore, context_store
from ctxlog.observability.exclusion import ExclusionMatcher
from ctxlog.observability.levels import set_min_level
from ctxlog.observability.logger import ContextLogger

_INBOUND_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


@dataclass(frozen=True)
class ExecutionContext:
    """Read-only view of the request handed to the enrichment callback."""

    method: str
    path: str
    headers: Headers
    query_string: str
    client: str | None
    identity: Any | None

    @classmethod
    def from_scope(cls, scope: Mapping[str, Any]) -> "ExecutionContext":
        client = scope.get("client")
        return cls(
            method=str(scope.get("method", "")),
            path=str(scope.get("path", "")),
            headers=Headers(scope=scope),
            query_string=(scope.get("query_string") or b"").decode("latin-1"),
            client=client[0] if client else None,
            identity=scope.get("user"),
        )


EnrichContext = Callable[[ExecutionContext], Union[Mapping[str, Any], Awaitable[Mapping[str, Any]]]]


def accept_inbound_id(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if _INBOUND_ID.match(value):
        return value
    return None


def new_correlation_id() -> str:
    return str(uuid.uuid4())


class RequestContextMiddleware:
    """Opens a request scope, enriches it, and logs the request outcome.

    Excluded paths are passed straight to the app: no scope is opened, so
    ``update_context`` is a no-op and log records carry no request fields.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        settings: Settings | None = None,
        enrich_context: EnrichContext | None = None,
        store: ContextStore | None = None,
    ) -> None:
        self.app = app
        self._settings = settings or get_settings()
        self._enrich_context = enrich_context
        self._store = store or context_store
        self._matcher = ExclusionMatcher(self._settings.exclude)
        set_min_level(self._settings.log_level)
        self._logger = ContextLogger("RequestContextMiddleware", store=self._store)

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if self._matcher.is_excluded(path):
            await self.app(scope, receive, send)
            return

        settings = self._settings
        headers = Headers(scope=scope)
        correlation_id = (
            accept_inbound_id(headers.get(settings.correlation_header))
            or accept_inbound_id(headers.get(settings.request_id_header))
            or new_correlation_id()
        )
        initial = {
            "correlation_id": correlation_id,
            "request_id": str(uuid.uuid4()),
            "start_timestamp": datetime.now(timezone.utc).isoformat(),
            "method": scope.get("method"),
            "path": path,
        }

        start = perf_counter()
        status_code: int = 500
        failure: BaseException | None = None

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                response_headers = MutableHeaders(scope=message)
                response_headers[settings.response_header] = correlation_id

            await send(message)

        with self._store.scope(initial):
            try:
                await self._enrich(scope)
                await self.app(scope, receive, send_wrapper)
            except BaseException as exc:
                failure = exc
                raise
            finally:
                self._finalize(start, status_code, failure)

    async def _enrich(self, scope: Mapping[str, Any]) -> None:
        if self._enrich_context is None:
            return

        execution_context = ExecutionContext.from_scope(scope)
        snapshot = self._store.get()
        timeout = self._settings.enrichment_timeout_s
        try:
            fields = await asyncio.wait_for(self._call_enrichment(snapshot, execution_context), timeout=timeout)
        except asyncio.TimeoutError:
            self._logger.warn("context_enrichment_failed", reason=f"timed out after {timeout}s")
            return
        except Exception as exc:  # noqa: BLE001
            self._logger.warn(
                "context_enrichment_failed",
                reason=str(exc) or type(exc).__name__,
                error_type=type(exc).__name__,
            )
            return

        self._store.merge(fields)

    async def _call_enrichment(
        self, snapshot: Mapping[str, Any], execution_context: ExecutionContext
    ) -> dict[str, Any]:
        # Sandbox scope: writes made by the callback itself never reach the
        # request scope, only its returned mapping does.
        with self._store.scope(snapshot):
            if inspect.iscoroutinefunction(self._enrich_context):
                result = await self._enrich_context(execution_context)
            else:
                result = await run_in_threadpool(self._enrich_context, execution_context)
                if inspect.isawaitable(result):
                    result = await result

        if not isinstance(result, Mapping):
            raise EnrichmentFailure(f"enrichment returned {type(result).__name__}, expected a mapping")
        return dict(result)

    def _finalize(self, start: float, status_code: int, failure: BaseException | None) -> None:
        duration_ms = round((perf_counter() - start) * 1000.0, 2)
        if isinstance(failure, asyncio.CancelledError):
            outcome = "cancelled"
        elif failure is not None or status_code >= 500:
            outcome = "failed"
        else:
            outcome = "completed"

        self._store.merge(duration_ms=duration_ms, status_code=status_code, outcome=outcome)

        if not self._settings.log_request_completion:
            return

        if outcome == "completed":
            self._logger.info("request_completed")
        else:
            self._logger.error("request_failed", error=failure)
