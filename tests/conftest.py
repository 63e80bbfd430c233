from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any

import pytest
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from ctxlog.config import get_settings, load_settings
from ctxlog.main import create_app
from ctxlog.observability.logger import set_min_level
from ctxlog.observability.logging import configure_logging
from ctxlog.services.order_service import set_order_service


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("LOG_LEVEL", "LOG_FORMAT", "LOG_EXCLUDE", "ENRICHMENT_TIMEOUT_S", "LOG_REQUEST_COMPLETION"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    configure_logging("info")
    set_order_service(None)

    yield

    set_order_service(None)
    get_settings.cache_clear()
    # Rebind the handler in case a test swapped stdout or reset structlog.
    configure_logging("info", force=True)
    set_min_level("info")


@pytest.fixture
def log_records() -> Iterator[list[dict[str, Any]]]:
    with structlog.testing.capture_logs() as records:
        yield records


@pytest.fixture
def client_factory() -> Callable[[FastAPI], AsyncClient]:
    """Build an AsyncClient for any ASGI app; use it as an async context manager."""

    def _make(app: FastAPI) -> AsyncClient:
        transport = ASGITransport(app=app)
        return AsyncClient(transport=transport, base_url="http://test")

    return _make


@pytest.fixture
async def api_client(client_factory) -> AsyncIterator[AsyncClient]:
    app = create_app(load_settings())
    async with client_factory(app) as client:
        yield client
