"""
User and wallet SQLModel database models
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Column, String, UniqueConstraint
from sqlmodel import Field, SQLModel

from database.columns import created_at, money, updated_at, uuid_pk, uuid_ref


class UserAccount(SQLModel, table=True):
    """User account with the profile currency it settles into"""

    __tablename__ = "user_accounts"

    user_id: uuid.UUID = uuid_pk()
    currency: str = Field(sa_column=Column(String(3), nullable=False))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, default=True))
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()


class WalletAccount(SQLModel, table=True):
    """Per-user, per-currency balance"""

    __tablename__ = "wallet_accounts"

    wallet_id: uuid.UUID = uuid_pk()
    user_id: uuid.UUID = uuid_ref("user_accounts.user_id")
    currency: str = Field(sa_column=Column(String(3), nullable=False))
    balance: Decimal = money(default=Decimal("0"))
    created_at: datetime = created_at()
    updated_at: datetime = updated_at()

    __table_args__ = (
        UniqueConstraint("user_id", "currency", name="uq_wallet_user_currency"),
        CheckConstraint("balance >= 0", name="check_no_negative_balance"),
    )
