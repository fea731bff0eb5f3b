"""
Payout method details, one model per rail, discriminated on `type`
"""

import re
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from enums import PayoutMethodType
from errors import InvalidPayoutMethod

E164_PATTERN = r"^\+?[1-9]\d{1,14}$"
IBAN_PATTERN = r"^[A-Z]{2}\d{2}[A-Z0-9]{1,30}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class _PayoutDetails(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    def masked(self) -> str:
        """Short display form, never the full account identifier"""
        raise NotImplementedError


def _mask(value: str, visible: int = 4) -> str:
    if len(value) <= visible:
        return value
    return "*" * (len(value) - visible) + value[-visible:]


class BankTransferDetails(_PayoutDetails):
    type: Literal["bank_transfer"] = "bank_transfer"
    account_holder_name: str = Field(min_length=1, max_length=255)
    account_number: str = Field(min_length=1, max_length=50)
    bank_name: str = Field(min_length=1, max_length=255)
    iban: str = Field(max_length=34)
    swift_code: Optional[str] = Field(None, max_length=50)
    branch_code: Optional[str] = Field(None, max_length=50)

    @field_validator("iban", mode="before")
    @classmethod
    def normalize_iban(cls, v):
        if isinstance(v, str):
            v = v.replace(" ", "").upper()
        return v

    @field_validator("iban")
    @classmethod
    def validate_iban(cls, v: str) -> str:
        if not re.match(IBAN_PATTERN, v):
            raise ValueError("IBAN must be a country code, two check digits and up to 30 characters")
        return v

    def masked(self) -> str:
        return f"{self.bank_name} {_mask(self.account_number)}"


class MobileMoneyDetails(_PayoutDetails):
    type: Literal["mobile_money"] = "mobile_money"
    provider: str = Field(min_length=1, max_length=100)
    phone_number: str = Field(max_length=20, pattern=E164_PATTERN)
    account_name: str = Field(min_length=1, max_length=255)
    network: Optional[str] = Field(None, max_length=100)

    def masked(self) -> str:
        return f"{self.provider} {_mask(self.phone_number)}"


class PayPalDetails(_PayoutDetails):
    type: Literal["paypal"] = "paypal"
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    account_name: str = Field(min_length=1, max_length=255)

    def masked(self) -> str:
        local, _, domain = self.email.partition("@")
        return f"{local[:2]}***@{domain}"


class PayShapDetails(_PayoutDetails):
    type: Literal["payshap"] = "payshap"
    phone_number: str = Field(min_length=1, max_length=20)
    account_name: str = Field(min_length=1, max_length=255)
    provider: Optional[str] = Field(None, max_length=100)

    def masked(self) -> str:
        return f"PayShap {_mask(self.phone_number)}"


class MulticaixaDetails(_PayoutDetails):
    type: Literal["multicaixa"] = "multicaixa"
    phone_number: str = Field(min_length=1, max_length=20)
    account_name: str = Field(min_length=1, max_length=255)
    network: Literal["multicaixa", "multicaixa_express", "multicaixa_instantaneo"]

    def masked(self) -> str:
        return f"{self.network} {_mask(self.phone_number)}"


class EWalletDetails(_PayoutDetails):
    type: Literal["ewallet"] = "ewallet"
    wallet_address: str = Field(min_length=1, max_length=255)
    wallet_type: Literal["crypto", "digital_wallet", "other"]
    provider: Optional[str] = Field(None, max_length=100)

    def masked(self) -> str:
        return f"{self.provider or self.wallet_type} {_mask(self.wallet_address, 6)}"


PayoutDetails = Annotated[
    Union[
        BankTransferDetails,
        MobileMoneyDetails,
        PayPalDetails,
        PayShapDetails,
        MulticaixaDetails,
        EWalletDetails,
    ],
    Field(discriminator="type"),
]

_details_adapter: TypeAdapter = TypeAdapter(PayoutDetails)


def parse_payout_details(type: PayoutMethodType, details: Dict[str, Any]) -> _PayoutDetails:
    """
    Validate a raw details payload against the variant for `type`.
    Raises InvalidPayoutMethod listing the offending fields.
    """
    payload = {key: value for key, value in (details or {}).items() if key != "type"}
    payload["type"] = PayoutMethodType(type).value
    try:
        return _details_adapter.validate_python(payload)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"][1:]) for err in e.errors()})
        raise InvalidPayoutMethod(
            f"Invalid {PayoutMethodType(type).label} details",
            fields=fields,
        ) from e


def dump_payout_details(details: _PayoutDetails) -> Dict[str, Any]:
    """JSON form stored on the payout method row"""
    return details.model_dump(mode="json", exclude_none=True)
