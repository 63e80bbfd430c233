from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

T = TypeVar("T")


class ContextStore:
    """Per-request mutable mapping bound to the current execution context.

    The ContextVar holds a reference to a plain dict. asyncio tasks and
    ``anyio.to_thread`` hops copy the *binding*, not the dict, so nested work
    started inside a scope mutates the same mapping its ancestors read from.
    Two requests running in separate tasks each bind their own dict.
    """

    def __init__(self, name: str = "ctxlog_scope") -> None:
        self._var: ContextVar[dict[str, Any] | None] = ContextVar(name, default=None)

    @contextmanager
    def scope(self, initial: Mapping[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        current: dict[str, Any] = dict(initial or {})
        token = self._var.set(current)
        try:
            yield current
        finally:
            self._var.reset(token)

    def run(self, initial: Mapping[str, Any] | None, body: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self.scope(initial):
            return body(*args, **kwargs)

    async def arun(
        self,
        initial: Mapping[str, Any] | None,
        body: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        with self.scope(initial):
            return await body(*args, **kwargs)

    def active(self) -> bool:
        return self._var.get() is not None

    def get(self) -> dict[str, Any]:
        current = self._var.get()
        if current is None:
            return {}
        return dict(current)

    def merge(self, partial: Mapping[str, Any] | None = None, **fields: Any) -> None:
        current = self._var.get()
        if current is None:
            return
        if partial:
            current.update(partial)
        if fields:
            current.update(fields)


context_store = ContextStore()


def get_context() -> dict[str, Any]:
    return context_store.get()


def update_context(partial: Mapping[str, Any] | None = None, **fields: Any) -> None:
    """Merge fields into the current request's context (no-op outside a request)."""

    context_store.merge(partial, **fields)
