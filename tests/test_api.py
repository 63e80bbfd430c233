import asyncio

from ctxlog.config import load_settings
from ctxlog.main import create_app
from ctxlog.observability.middleware import ExecutionContext
from ctxlog.services.enrichment import enrich_from_headers
from ctxlog.services.order_service import OrderService, set_order_service


def _events(records: list[dict], name: str) -> list[dict]:
    return [r for r in records if r.get("event") == name]


async def test_health_responds_with_correlation_header(api_client) -> None:
    resp = await api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers.get("x-correlation-id")


async def test_checkout_propagates_context_across_services(api_client, log_records) -> None:
    resp = await api_client.post(
        "/api/orders/o-100/checkout",
        headers={"X-Correlation-Id": "abc-123", "X-Tenant-Id": "acme"},
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["order_id"] == "o-100"
    assert payload["status"] == "paid"
    assert payload["correlation_id"] == "abc-123"

    # Set by OrderService, seen by PaymentService.
    (charged,) = _events(log_records, "payment_charged")
    assert charged["logger"] == "PaymentService"
    assert charged["order_id"] == "o-100"
    assert charged["tenant_id"] == "acme"
    assert charged["correlation_id"] == "abc-123"

    # Set inside the payment task, seen by the parent afterwards.
    (finished,) = _events(log_records, "order_checkout_finished")
    assert finished["payment_id"] == payload["payment_id"]

    (completed,) = _events(log_records, "request_completed")
    assert completed["order_id"] == "o-100"
    assert completed["payment_id"] == payload["payment_id"]
    assert completed["status_code"] == 200
    assert completed["duration_ms"] >= 0


async def test_started_record_does_not_see_payment_id(api_client, log_records) -> None:
    await api_client.post("/api/orders/o-1/checkout")

    (started,) = _events(log_records, "order_checkout_started")
    assert started["order_id"] == "o-1"
    assert "payment_id" not in started


async def test_concurrent_checkouts_stay_isolated(api_client, log_records) -> None:
    responses = await asyncio.gather(
        *(api_client.post(f"/api/orders/o-{i}/checkout", headers={"X-Correlation-Id": f"c-{i}"}) for i in range(5))
    )
    assert all(r.status_code == 200 for r in responses)

    charged = _events(log_records, "payment_charged")
    assert len(charged) == 5
    for record in charged:
        assert record["order_id"] == "o-" + record["correlation_id"].removeprefix("c-")


async def test_background_receipt_inherits_request_context(log_records, client_factory) -> None:
    service = OrderService(receipt_delay_s=0.01)
    set_order_service(service)
    app = create_app(load_settings())

    async with client_factory(app) as client:
        resp = await client.post("/api/orders/o-7/receipt", headers={"X-Correlation-Id": "c-receipt"})
        assert resp.status_code == 202
        await asyncio.gather(*service.background_tasks)

    (sent,) = _events(log_records, "receipt_sent")
    assert sent["correlation_id"] == "c-receipt"
    assert sent["order_id"] == "o-7"
    assert sent["receipt_for"] == "o-7"


async def test_excluded_health_check_has_no_request_context(log_records, client_factory) -> None:
    app = create_app(load_settings(exclude=("/health",)))
    async with client_factory(app) as client:
        resp = await client.get("/health")

    assert resp.status_code == 200
    assert "x-correlation-id" not in resp.headers
    assert _events(log_records, "request_completed") == []


async def test_sample_enrichment_reads_headers() -> None:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api",
        "headers": [(b"x-tenant-id", b"acme"), (b"user-agent", b"pytest")],
        "query_string": b"",
        "client": ("127.0.0.1", 1234),
    }
    fields = await enrich_from_headers(ExecutionContext.from_scope(scope))

    assert fields == {"tenant_id": "acme", "user_agent": "pytest", "client_ip": "127.0.0.1"}
