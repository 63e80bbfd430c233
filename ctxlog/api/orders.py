from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ctxlog.models.schemas import OrderResponse, ReceiptResponse
from ctxlog.services.order_service import OrderService, get_order_service


router = APIRouter(prefix="/api", tags=["orders"])


@router.post("/orders/{order_id}/checkout", response_model=OrderResponse)
async def checkout(order_id: str, service: OrderService = Depends(get_order_service)) -> OrderResponse:
    order_id = order_id.strip()
    if not order_id:
        raise HTTPException(status_code=400, detail="order_id must not be empty")
    return await service.checkout(order_id)


@router.post("/orders/{order_id}/receipt", response_model=ReceiptResponse, status_code=202)
async def send_receipt(order_id: str, service: OrderService = Depends(get_order_service)) -> ReceiptResponse:
    service.schedule_receipt(order_id)
    return ReceiptResponse(order_id=order_id)
