"""
Exchange listing, order and earning SQLModel database models
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import CheckConstraint, Column, String
from sqlmodel import Field, SQLModel

from database.columns import (
    created_at,
    enum_column,
    json_column,
    money,
    updated_at,
    uuid_pk,
    uuid_ref,
)
from enums import EarningStatus, EarningType, ListingStatus, OrderStatus


class Listing(SQLModel, table=True):
    """A seller's standing offer to exchange one currency for another"""

    __tablename__ = "listings"

    listing_id: uuid.UUID = uuid_pk()
    seller_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    # Pair is bound by the first order when not set at creation
    from_currency: Optional[str] = Field(default=None, sa_column=Column(String(3), nullable=True))
    to_currency: Optional[str] = Field(default=None, sa_column=Column(String(3), nullable=True))
    amount: Decimal = money()  # Remaining inventory, source currency
    initial_amount: Decimal = money()
    min_amount: Decimal = money(default=Decimal("0"))
    max_amount: Optional[Decimal] = money(nullable=True)
    exchange_rate: Decimal = money()
    fee: Decimal = money(default=Decimal("0"))  # Percentage
    status: ListingStatus = enum_column(
        ListingStatus, "listing_status", default=ListingStatus.ACTIVE, index=True
    )
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()

    __table_args__ = (CheckConstraint("amount >= 0", name="check_no_negative_inventory"),)

    def is_active(self) -> bool:
        return self.status == ListingStatus.ACTIVE and self.amount > 0

    def is_pair_bound(self) -> bool:
        return bool(self.from_currency) and bool(self.to_currency)

    @property
    def pair(self) -> str:
        return f"{self.from_currency}/{self.to_currency}"


class Order(SQLModel, table=True):
    """One settlement against a listing"""

    __tablename__ = "orders"

    order_id: uuid.UUID = uuid_pk()
    buyer_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    listing_id: uuid.UUID = uuid_ref("listings.listing_id")
    amount: Decimal = money()  # Source currency
    from_currency: str = Field(sa_column=Column(String(3), nullable=False))
    to_currency: str = Field(sa_column=Column(String(3), nullable=False))
    exchange_rate: Decimal = money()
    fee_amount: Decimal = money()
    total_amount: Decimal = money()  # Exchanged gross, target currency
    net_amount: Decimal = money()
    status: OrderStatus = enum_column(OrderStatus, "order_status", default=OrderStatus.PENDING)
    reference: str = Field(sa_column=Column(String(64), nullable=False, unique=True))
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()


class Earning(SQLModel, table=True):
    """Ledger credit a user became entitled to"""

    __tablename__ = "earnings"

    earning_id: uuid.UUID = uuid_pk()
    user_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    order_id: Optional[uuid.UUID] = uuid_ref("orders.order_id", nullable=True)
    payout_id: Optional[uuid.UUID] = uuid_ref("payouts.payout_id", nullable=True)
    currency: str = Field(sa_column=Column(String(3), nullable=False))
    amount: Decimal = money()
    fee: Decimal = money(default=Decimal("0"))
    net_amount: Decimal = money()
    type: EarningType = enum_column(EarningType, "earning_type")
    status: EarningStatus = enum_column(
        EarningStatus, "earning_status", default=EarningStatus.AVAILABLE, index=True
    )
    metadata_: Dict[str, Any] = json_column()
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()
