"""
Request schemas for listings, orders, payouts, goods and gateway callbacks
"""

from decimal import Decimal
from typing import Annotated, Any, Dict, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

from enums import PayoutMethodType
from models.core import Currency


def _currency_code(v: str) -> str:
    code = v.strip().upper()
    Currency.validate_or_raise(code)
    return code


CurrencyCode = Annotated[str, AfterValidator(_currency_code)]


class ListingCreateRequest(BaseModel):
    """Request to create an exchange listing"""

    seller_id: UUID
    amount: Decimal = Field(gt=0)
    exchange_rate: Decimal = Field(gt=0)
    fee: Decimal = Field(Decimal("0"), ge=0, lt=100)  # Percentage
    min_amount: Decimal = Field(Decimal("0"), ge=0)
    max_amount: Optional[Decimal] = Field(None, gt=0)
    from_currency: Optional[CurrencyCode] = None
    to_currency: Optional[CurrencyCode] = None

    @model_validator(mode="after")
    def check_bounds(self):
        if self.max_amount is not None and self.min_amount > self.max_amount:
            raise ValueError("min_amount cannot exceed max_amount")
        if (self.from_currency is None) != (self.to_currency is None):
            raise ValueError("from_currency and to_currency must be set together")
        return self


class ListingActionRequest(BaseModel):
    """Seller-owned listing lifecycle action"""

    seller_id: UUID


class SettlementRequest(BaseModel):
    """Request to settle an order against a listing"""

    buyer_id: UUID
    listing_id: UUID
    amount: Decimal = Field(gt=0)
    from_currency: CurrencyCode
    to_currency: CurrencyCode


class PayoutRequest(BaseModel):
    """Request to withdraw available earnings"""

    user_id: UUID
    amount: Decimal = Field(gt=0)
    currency: CurrencyCode
    payout_method_id: UUID


class PayoutMethodCreateRequest(BaseModel):
    """Add a payout method; details are validated against `type`"""

    user_id: UUID
    type: PayoutMethodType
    currency: CurrencyCode
    details: Dict[str, Any]
    is_default: bool = False


class PayoutMethodUpdateRequest(BaseModel):
    user_id: UUID
    details: Dict[str, Any]
    currency: Optional[CurrencyCode] = None


class GoodsListingCreateRequest(BaseModel):
    seller_id: UUID
    title: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(gt=0)
    quantity: int = Field(gt=0)
    currency: CurrencyCode


class GoodsOrderRequest(BaseModel):
    buyer_id: UUID
    goods_listing_id: UUID


class GoodsOrderActionRequest(BaseModel):
    """Seller action on a goods order (complete or refund)"""

    seller_id: UUID


class GoodsPayoutRequest(BaseModel):
    """Payout of a released goods order"""

    user_id: UUID
    linked_account: str = Field(min_length=1)
    is_cross_border: bool = False
    converted_currency: Optional[CurrencyCode] = None
    conversion_rate: Optional[Decimal] = Field(None, gt=0)


class DepositCallback(BaseModel):
    """Payment gateway deposit notification"""

    reference: str = Field(min_length=1, max_length=100)
    user_id: UUID
    amount: Decimal = Field(gt=0)
    currency: CurrencyCode
    provider: str = Field(min_length=1, max_length=50)
    status: str
    provider_reference: Optional[str] = None

    # Ignore extra fields gateways may send
    model_config = ConfigDict(extra="ignore")

    @field_validator("status")
    @classmethod
    def normalize_status(cls, v: str) -> str:
        return v.strip().lower()
