"""
Payout and payout method SQLModel database models
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, Column, Index, String, Text, text
from sqlmodel import Field, SQLModel

from database.columns import (
    created_at,
    enum_column,
    json_column,
    money,
    timestamp,
    updated_at,
    uuid_pk,
    uuid_ref,
)
from enums import PayoutMethodType, PayoutStatus


class PayoutMethod(SQLModel, table=True):
    """Destination for payouts. `details` is always a validated variant payload."""

    __tablename__ = "payout_methods"

    payout_method_id: uuid.UUID = uuid_pk()
    user_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    type: PayoutMethodType = enum_column(PayoutMethodType, "payout_method_type")
    details: Dict[str, Any] = json_column()
    currency: str = Field(sa_column=Column(String(3), nullable=False))
    is_default: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()

    # At most one default method per user via a partial unique index
    __table_args__ = (
        Index(
            "uq_default_payout_method",
            "user_id",
            unique=True,
            postgresql_where=text("is_default IS TRUE"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    def get_details(self):
        """Re-validate the stored payload into its typed variant"""
        from models.schemas.payout_methods import parse_payout_details

        return parse_payout_details(self.type, self.details)


class Payout(SQLModel, table=True):
    """Request to move funds out to an external account"""

    __tablename__ = "payouts"

    payout_id: uuid.UUID = uuid_pk()
    user_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    # One payout per goods order
    goods_order_id: Optional[uuid.UUID] = uuid_ref(
        "goods_orders.goods_order_id", nullable=True, unique=True
    )
    payout_method_id: Optional[uuid.UUID] = uuid_ref(
        "payout_methods.payout_method_id", nullable=True, ondelete="SET NULL"
    )
    currency: str = Field(sa_column=Column(String(3), nullable=False))
    amount: Decimal = money()
    status: PayoutStatus = enum_column(
        PayoutStatus, "payout_status", default=PayoutStatus.PENDING, index=True
    )
    is_cross_border: bool = Field(default=False, sa_column=Column(Boolean, default=False))
    conversion_rate: Optional[Decimal] = money(nullable=True)
    # amount in converted_currency; amount itself stays in currency
    converted_amount: Optional[Decimal] = money(nullable=True)
    converted_currency: Optional[str] = Field(
        default=None, sa_column=Column(String(3), nullable=True)
    )
    payout_fee: Decimal = money(default=Decimal("0"))
    linked_account: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    reference: str = Field(sa_column=Column(String(64), nullable=False, unique=True))
    processed_at: Optional[datetime] = timestamp()
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()
