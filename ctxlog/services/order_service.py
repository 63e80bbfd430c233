from __future__ import annotations

import asyncio
import zlib

from ctxlog.models.schemas import OrderResponse
from ctxlog.observability.context import get_context, update_context
from ctxlog.observability.logger import ContextLogger
from ctxlog.services.payment_service import PaymentService


class OrderService:
    """Demo service: tags the request with the order and hands off to payments."""

    def __init__(self, payments: PaymentService | None = None, receipt_delay_s: float = 0.01) -> None:
        self.logger = ContextLogger(OrderService.__name__)
        self._payments = payments or PaymentService()
        self._receipt_delay_s = receipt_delay_s
        self.background_tasks: set[asyncio.Task[None]] = set()

    @staticmethod
    def _price_for(order_id: str) -> int:
        return 500 + zlib.crc32(order_id.encode("utf-8")) % 9500

    async def checkout(self, order_id: str) -> OrderResponse:
        update_context(order_id=order_id)
        self.logger.info("order_checkout_started")

        amount_cents = self._price_for(order_id)
        # Runs as its own task; it still shares this request's context.
        payment_id = await asyncio.create_task(self._payments.charge(amount_cents))

        self.logger.info("order_checkout_finished", status="paid")
        return OrderResponse(
            order_id=order_id,
            status="paid",
            amount_cents=amount_cents,
            payment_id=payment_id,
            correlation_id=get_context().get("correlation_id"),
        )

    def schedule_receipt(self, order_id: str) -> None:
        update_context(order_id=order_id)
        task = asyncio.create_task(self._send_receipt(order_id))
        self.background_tasks.add(task)
        task.add_done_callback(self.background_tasks.discard)

    async def _send_receipt(self, order_id: str) -> None:
        await asyncio.sleep(self._receipt_delay_s)
        # Usually runs after the response went out; the request scope it reads
        # from is no longer tracked by the middleware.
        self.logger.info("receipt_sent", receipt_for=order_id)


_order_service: OrderService | None = None


def set_order_service(service: OrderService | None) -> None:
    global _order_service
    _order_service = service


def get_order_service() -> OrderService:
    global _order_service
    if _order_service is None:
        _order_service = OrderService()
    return _order_service
