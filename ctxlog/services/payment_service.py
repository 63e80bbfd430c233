from __future__ import annotations

import asyncio
import uuid

from ctxlog.observability.logger import ContextLogger


class PaymentService:
    def __init__(self) -> None:
        self.logger = ContextLogger(PaymentService.__name__)

    async def charge(self, amount_cents: int) -> str:
        if amount_cents < 0:
            raise ValueError("amount_cents must be non-negative")

        self.logger.debug("payment_authorizing", amount_cents=amount_cents)
        # Stand-in for the downstream gateway call.
        await asyncio.sleep(0)

        payment_id = f"pay_{uuid.uuid4().hex[:12]}"
        self.logger.update_context(payment_id=payment_id)
        self.logger.info("payment_charged", amount_cents=amount_cents)
        return payment_id
