"""
Goods marketplace API endpoints (escrow-backed orders)
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter

from api.errors import domain_errors
from models.responses import GoodsListingResponse, GoodsOrderDetail, GoodsOrderResponse, PayoutResponse
from models.schemas import (
    GoodsListingCreateRequest,
    GoodsOrderActionRequest,
    GoodsOrderRequest,
    GoodsPayoutRequest,
)
from services import escrow

router = APIRouter()


@router.post("/listings", response_model=GoodsListingResponse, status_code=201)
async def create_goods_listing(request: GoodsListingCreateRequest) -> GoodsListingResponse:
    with domain_errors():
        listing = await escrow.create_goods_listing(
            request.seller_id, request.title, request.price, request.quantity, request.currency
        )
    return GoodsListingResponse.model_validate(listing)


@router.get("/listings", response_model=List[GoodsListingResponse])
async def get_goods_listings() -> List[GoodsListingResponse]:
    found = await escrow.list_goods_listings()
    return [GoodsListingResponse.model_validate(listing) for listing in found]


@router.post("/orders", response_model=GoodsOrderResponse, status_code=201)
async def place_order(request: GoodsOrderRequest) -> GoodsOrderResponse:
    """Buy one unit; funds are held in escrow"""
    with domain_errors():
        order = await escrow.place_order(request.buyer_id, request.goods_listing_id)
    return GoodsOrderResponse.model_validate(order)


@router.get("/orders/user/{user_id}", response_model=List[GoodsOrderResponse])
async def get_user_orders(user_id: UUID) -> List[GoodsOrderResponse]:
    orders = await escrow.list_user_orders(user_id)
    return [GoodsOrderResponse.model_validate(order) for order in orders]


@router.get("/orders/{goods_order_id}", response_model=GoodsOrderDetail)
async def get_order(goods_order_id: UUID, user_id: UUID) -> GoodsOrderDetail:
    with domain_errors():
        return await escrow.get_order_detail(user_id, goods_order_id)


@router.post("/orders/{goods_order_id}/complete", response_model=GoodsOrderResponse)
async def complete_order(goods_order_id: UUID, request: GoodsOrderActionRequest) -> GoodsOrderResponse:
    """Seller releases escrow"""
    with domain_errors():
        order = await escrow.complete_order(request.seller_id, goods_order_id)
    return GoodsOrderResponse.model_validate(order)


@router.post("/orders/{goods_order_id}/refund", response_model=GoodsOrderResponse)
async def refund_order(goods_order_id: UUID, request: GoodsOrderActionRequest) -> GoodsOrderResponse:
    """Seller refunds the buyer"""
    with domain_errors():
        order = await escrow.refund_order(request.seller_id, goods_order_id)
    return GoodsOrderResponse.model_validate(order)


@router.post("/orders/{goods_order_id}/payout", response_model=PayoutResponse, status_code=201)
async def request_order_payout(goods_order_id: UUID, request: GoodsPayoutRequest) -> PayoutResponse:
    with domain_errors():
        payout = await escrow.request_order_payout(
            request.user_id,
            goods_order_id,
            linked_account=request.linked_account,
            is_cross_border=request.is_cross_border,
            converted_currency=request.converted_currency,
            conversion_rate=request.conversion_rate,
        )
    return PayoutResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/process", response_model=PayoutResponse)
async def process_order_payout(payout_id: UUID, user_id: UUID) -> PayoutResponse:
    with domain_errors():
        payout = await escrow.process_order_payout(user_id, payout_id)
    return PayoutResponse.model_validate(payout)
