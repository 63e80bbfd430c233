from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class OrderResponse(BaseModel):
    order_id: str
    status: Literal["paid", "pending"]
    amount_cents: int = Field(ge=0)
    payment_id: str
    correlation_id: str | None = None


class ReceiptResponse(BaseModel):
    order_id: str
    queued: bool = True
