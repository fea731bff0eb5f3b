"""
Ledger SQLModel database models
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import Column, Index, String
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
from enums import TransactionStatus, TransactionType


class Transaction(SQLModel, table=True):
    """
    Append-only audit record of every wallet mutation.
    `reference` is unique and doubles as the idempotency key for gateway callbacks.
    """

    __tablename__ = "transactions"

    transaction_id: uuid.UUID = uuid_pk()
    user_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    wallet_id: uuid.UUID = uuid_ref("wallet_accounts.wallet_id")
    counterparty_id: Optional[uuid.UUID] = uuid_ref(nullable=True, index=False)
    listing_id: Optional[uuid.UUID] = uuid_ref(nullable=True, index=False)
    amount: Decimal = money()  # Signed: negative for debits
    net_amount: Decimal = money()
    platform_fee: Decimal = money(default=Decimal("0"))
    platform_fee_percentage: Decimal = money(default=Decimal("0"))
    seller_fee: Decimal = money(default=Decimal("0"))
    seller_fee_percentage: Decimal = money(default=Decimal("0"))
    total_fees: Decimal = money(default=Decimal("0"))
    currency: str = Field(sa_column=Column(String(3), nullable=False))
    type: TransactionType = enum_column(TransactionType, "transaction_type", index=True)
    status: TransactionStatus = enum_column(
        TransactionStatus, "transaction_status", default=TransactionStatus.PENDING
    )
    reference: str = Field(sa_column=Column(String(100), nullable=False, unique=True))
    provider_reference: Optional[str] = Field(
        default=None, sa_column=Column(String(100), nullable=True)
    )
    description: str = Field(default="", sa_column=Column(String(500), nullable=False))
    metadata_: Dict[str, Any] = json_column()
    completed_at: Optional[datetime] = timestamp()
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()

    __table_args__ = (
        Index("ix_transactions_user_status", "user_id", "status"),
        Index("ix_transactions_provider_reference", "provider_reference"),
    )
