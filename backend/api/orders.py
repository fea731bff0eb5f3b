"""
Order settlement API endpoints
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter

from api.errors import domain_errors
from engine import settlement_engine
from models.responses import OrderResponse
from models.schemas import SettlementRequest

router = APIRouter()


@router.post("/", response_model=OrderResponse, status_code=201)
async def settle_order(request: SettlementRequest) -> OrderResponse:
    """
    Settle an order against a listing. The response is returned only after
    the order, wallet debit, earnings and inventory update have committed.
    """
    with domain_errors():
        order = await settlement_engine.settle(
            buyer_id=request.buyer_id,
            listing_id=request.listing_id,
            amount=request.amount,
            from_currency=request.from_currency,
            to_currency=request.to_currency,
        )
    return OrderResponse.model_validate(order)


@router.get("/buyer/{buyer_id}", response_model=List[OrderResponse])
async def get_buyer_orders(buyer_id: UUID, limit: int = 50) -> List[OrderResponse]:
    orders = await settlement_engine.list_buyer_orders(buyer_id, limit)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get("/listing/{listing_id}", response_model=List[OrderResponse])
async def get_listing_orders(listing_id: UUID) -> List[OrderResponse]:
    orders = await settlement_engine.list_listing_orders(listing_id)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID) -> OrderResponse:
    with domain_errors():
        order = await settlement_engine.get_order(order_id)
    return OrderResponse.model_validate(order)
