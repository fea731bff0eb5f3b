"""
Column factories shared by the table models.
Types are portable so the same models run on PostgreSQL and SQLite.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Type

from sqlalchemy import JSON, BigInteger, Column, DateTime, ForeignKey, TypeDecorator, Uuid, func
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field

from models.core.money import quantize, to_decimal

# Stored amounts are integer multiples of 10^-8
MONEY_SCALE = 8


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def uuid_pk() -> Any:
    return Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
    )


def uuid_ref(
    foreign_key: Optional[str] = None,
    nullable: bool = False,
    index: bool = True,
    unique: bool = False,
    ondelete: Optional[str] = None,
) -> Any:
    args = [ForeignKey(foreign_key, ondelete=ondelete)] if foreign_key else []
    return Field(
        default=None if nullable else ...,
        sa_column=Column(
            Uuid(as_uuid=True), *args, nullable=nullable, index=index and not unique, unique=unique
        ),
    )


class Money(TypeDecorator):
    """
    Decimal amount stored as BIGINT units of 10^-8, like cents but at ledger
    precision. Comparisons and arithmetic in SQL stay exact on every backend
    (SQLite has no fixed-point type). Range is about 9.2e10 whole units.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(quantize(value).scaleb(MONEY_SCALE))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return quantize(to_decimal(value).scaleb(-MONEY_SCALE))


def money(default: Optional[Decimal] = None, nullable: bool = False) -> Any:
    return Field(
        default=default if default is not None or nullable else ...,
        sa_column=Column(Money(), nullable=nullable, default=default),
    )


def enum_column(enum_cls: Type[Enum], name: str, default: Optional[Enum] = None, index: bool = False) -> Any:
    return Field(
        default=default if default is not None else ...,
        sa_column=Column(
            SAEnum(
                enum_cls,
                name=name,
                create_constraint=True,
                values_callable=lambda members: [member.value for member in members],
            ),
            nullable=False,
            index=index,
            default=default,
        ),
    )


def json_column() -> Any:
    return Field(default_factory=dict, sa_column=Column(JSON, nullable=False, default=dict))


def timestamp(nullable: bool = True) -> Any:
    return Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=nullable))


def created_at() -> Any:
    return Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), server_default=func.now(), index=True),
    )


def updated_at() -> Any:
    return Field(
        default_factory=utcnow,
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
        ),
    )
