"""
Models for settlement service responses
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from enums import (
    EarningStatus,
    EarningType,
    EscrowStatus,
    GoodsListingStatus,
    GoodsOrderStatus,
    ListingStatus,
    OrderStatus,
    PayoutMethodType,
    PayoutStatus,
    TransactionStatus,
    TransactionType,
)


class _FromRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ListingResponse(_FromRow):
    """Exchange listing"""

    listing_id: UUID
    seller_id: UUID
    from_currency: Optional[str]
    to_currency: Optional[str]
    amount: Decimal
    initial_amount: Decimal
    min_amount: Decimal
    max_amount: Optional[Decimal]
    exchange_rate: Decimal
    fee: Decimal
    status: ListingStatus
    created_at: datetime


class QuoteResponse(BaseModel):
    """Settlement preview, nothing is reserved"""

    listing_id: UUID
    amount: Decimal
    exchange_rate: Decimal
    exchanged_amount: Decimal
    fee_amount: Decimal
    net_amount: Decimal
    from_currency: Optional[str]
    to_currency: Optional[str]


class OrderResponse(_FromRow):
    """Settled order"""

    order_id: UUID
    reference: str
    buyer_id: UUID
    listing_id: UUID
    amount: Decimal
    from_currency: str
    to_currency: str
    exchange_rate: Decimal
    fee_amount: Decimal
    total_amount: Decimal
    net_amount: Decimal
    status: OrderStatus
    created_at: datetime


class EarningResponse(_FromRow):
    earning_id: UUID
    user_id: UUID
    order_id: Optional[UUID]
    payout_id: Optional[UUID]
    currency: str
    amount: Decimal
    fee: Decimal
    net_amount: Decimal
    type: EarningType
    status: EarningStatus
    metadata: Dict[str, Any] = Field(validation_alias="metadata_")
    created_at: datetime


class BalanceResponse(BaseModel):
    """Earnings totals for one currency"""

    currency: str
    available: Decimal
    processing: Decimal
    paid: Decimal


class PayoutResponse(_FromRow):
    payout_id: UUID
    reference: str
    user_id: UUID
    goods_order_id: Optional[UUID]
    payout_method_id: Optional[UUID]
    currency: str
    amount: Decimal
    status: PayoutStatus
    is_cross_border: bool
    conversion_rate: Optional[Decimal]
    converted_amount: Optional[Decimal]
    converted_currency: Optional[str]
    payout_fee: Decimal
    processed_at: Optional[datetime]
    created_at: datetime


class PayoutMethodResponse(_FromRow):
    payout_method_id: UUID
    user_id: UUID
    type: PayoutMethodType
    currency: str
    details: Dict[str, Any]
    is_default: bool
    created_at: datetime


class TransactionResponse(_FromRow):
    """Ledger entry"""

    transaction_id: UUID
    reference: str
    user_id: UUID
    currency: str
    amount: Decimal
    net_amount: Decimal
    total_fees: Decimal
    type: TransactionType
    status: TransactionStatus
    description: Optional[str]
    created_at: datetime


class DepositResult(BaseModel):
    """Outcome of a gateway deposit callback"""

    already_applied: bool
    transaction: TransactionResponse


class GoodsListingResponse(_FromRow):
    goods_listing_id: UUID
    seller_id: UUID
    title: str
    currency: str
    price: Decimal
    quantity: int
    status: GoodsListingStatus


class EscrowResponse(_FromRow):
    escrow_id: UUID
    amount: Decimal
    status: EscrowStatus
    held_at: Optional[datetime]
    released_at: Optional[datetime]
    refunded_at: Optional[datetime]


class FeeResponse(_FromRow):
    listing_fee: Decimal
    seller_commission: Decimal
    buyer_fee: Decimal
    payout_fee: Decimal
    total_fees: Decimal


class GoodsOrderResponse(_FromRow):
    goods_order_id: UUID
    reference: str
    buyer_id: UUID
    seller_id: UUID
    goods_listing_id: UUID
    currency: str
    price: Decimal
    buyer_fee: Decimal
    total_amount: Decimal
    status: GoodsOrderStatus
    created_at: datetime


class GoodsOrderDetail(BaseModel):
    """Goods order with its escrow and fee breakdown"""

    order: GoodsOrderResponse
    escrow: EscrowResponse
    fee: FeeResponse


class RateInfo(BaseModel):
    """Display rate between two currencies"""

    base: str
    target: str
    rate: Decimal
    change_24h: Decimal
    change_percent_24h: Decimal
    high_24h: Decimal
    low_24h: Decimal
    is_fallback: bool
    updated_at: datetime


class RatesResult(BaseModel):
    base: str
    rates: Dict[str, Decimal]
    is_fallback: bool
    updated_at: datetime


class CurrencyInfo(BaseModel):
    code: str
    name: str
    flag: str


class CurrenciesResult(BaseModel):
    currencies: List[CurrencyInfo]
