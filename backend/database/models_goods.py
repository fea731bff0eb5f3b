"""
Goods order (escrow variant) SQLModel database models
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlmodel import Field, SQLModel

from database.columns import (
    created_at,
    enum_column,
    money,
    timestamp,
    updated_at,
    uuid_pk,
    uuid_ref,
)
from enums import EscrowStatus, GoodsListingStatus, GoodsOrderStatus


class GoodsListing(SQLModel, table=True):
    """Fixed-price item offered by a seller"""

    __tablename__ = "goods_listings"

    goods_listing_id: uuid.UUID = uuid_pk()
    seller_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    title: str = Field(sa_column=Column(String(255), nullable=False))
    currency: str = Field(sa_column=Column(String(3), nullable=False))
    price: Decimal = money()
    quantity: int = Field(sa_column=Column(Integer, nullable=False))
    status: GoodsListingStatus = enum_column(
        GoodsListingStatus, "goods_listing_status", default=GoodsListingStatus.ACTIVE
    )
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()

    __table_args__ = (CheckConstraint("quantity >= 0", name="check_no_negative_quantity"),)


class GoodsOrder(SQLModel, table=True):
    """Purchase of one goods listing unit, paid into escrow"""

    __tablename__ = "goods_orders"

    goods_order_id: uuid.UUID = uuid_pk()
    buyer_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    seller_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    goods_listing_id: uuid.UUID = uuid_ref("goods_listings.goods_listing_id")
    currency: str = Field(sa_column=Column(String(3), nullable=False))
    price: Decimal = money()
    buyer_fee: Decimal = money(default=Decimal("0"))
    total_amount: Decimal = money()  # price + buyer_fee
    status: GoodsOrderStatus = enum_column(
        GoodsOrderStatus, "goods_order_status", default=GoodsOrderStatus.PENDING
    )
    reference: str = Field(sa_column=Column(String(64), nullable=False, unique=True))
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()


class Escrow(SQLModel, table=True):
    """Buyer funds held until the seller releases them"""

    __tablename__ = "escrow"

    escrow_id: uuid.UUID = uuid_pk()
    goods_order_id: uuid.UUID = uuid_ref("goods_orders.goods_order_id", unique=True)
    amount: Decimal = money()
    status: EscrowStatus = enum_column(EscrowStatus, "escrow_status", default=EscrowStatus.HELD)
    held_at: Optional[datetime] = timestamp()
    released_at: Optional[datetime] = timestamp()
    refunded_at: Optional[datetime] = timestamp()
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()


class Fee(SQLModel, table=True):
    """Itemized fees for one goods order"""

    __tablename__ = "fees"

    fee_id: uuid.UUID = uuid_pk()
    goods_order_id: uuid.UUID = uuid_ref("goods_orders.goods_order_id", unique=True)
    listing_fee: Decimal = money(default=Decimal("0"))
    seller_commission: Decimal = money(default=Decimal("0"))
    buyer_fee: Decimal = money(default=Decimal("0"))
    payout_fee: Decimal = money(default=Decimal("0"))
    total_fees: Decimal = money(default=Decimal("0"))
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()

    def recompute_total(self) -> Decimal:
        self.total_fees = self.listing_fee + self.seller_commission + self.buyer_fee + self.payout_fee
        return self.total_fees
