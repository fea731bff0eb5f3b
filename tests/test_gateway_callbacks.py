"""
Deposit callbacks credit a wallet exactly once per gateway reference
"""

import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from enums import TransactionType
from engine import settlement_engine
from errors import NotFound, ReferenceConflict, ValidationError
from models.schemas import DepositCallback
from services import wallets
from services.gateway_callbacks import apply_deposit_callback


def _callback(user_id, **overrides):
    payload = {
        "reference": "GW-20260101-0001",
        "user_id": str(user_id),
        "amount": "250.00",
        "currency": "usd",
        "provider": "dynopay",
        "status": "SUCCESS",
        "provider_reference": "dp_tx_123",
    }
    payload.update(overrides)
    return DepositCallback.model_validate(payload)


class TestDepositCallback:
    def test_normalizes_currency_and_status(self):
        callback = _callback(uuid.uuid4(), signature="ignored")

        assert callback.currency == "USD"
        assert callback.status == "success"

    def test_rejects_unsupported_currency(self):
        with pytest.raises(PydanticValidationError):
            _callback(uuid.uuid4(), currency="GBP")


class TestApplyDepositCallback:
    async def test_replayed_callback_credits_once(self, create_user):
        user = await create_user("USD")
        callback = _callback(user.user_id)

        transaction, already_applied = await apply_deposit_callback(callback)
        replayed, replay_applied = await apply_deposit_callback(callback)

        assert already_applied is False
        assert replay_applied is True
        assert replayed.transaction_id == transaction.transaction_id
        assert transaction.type == TransactionType.DEPOSIT
        assert transaction.provider_reference == "dp_tx_123"
        assert await wallets.get_balance(user.user_id, "USD") == Decimal("250")

    async def test_failed_payment_is_not_credited(self, create_user):
        user = await create_user("USD")

        with pytest.raises(ValidationError):
            await apply_deposit_callback(_callback(user.user_id, status="failed"))

        assert await wallets.get_balance(user.user_id, "USD") == Decimal("0")

    async def test_unknown_user(self, db):
        with pytest.raises(NotFound):
            await apply_deposit_callback(_callback(uuid.uuid4()))

    async def test_reference_of_another_users_deposit(self, create_user):
        first = await create_user("USD")
        second = await create_user("USD")
        await apply_deposit_callback(_callback(first.user_id))

        with pytest.raises(ReferenceConflict):
            await apply_deposit_callback(_callback(second.user_id))

        assert await wallets.get_balance(first.user_id, "USD") == Decimal("250")
        assert await wallets.get_balance(second.user_id, "USD") == Decimal("0")

    async def test_same_reference_with_different_amount(self, create_user):
        user = await create_user("USD")
        await apply_deposit_callback(_callback(user.user_id))

        with pytest.raises(ReferenceConflict):
            await apply_deposit_callback(_callback(user.user_id, amount="300"))

        assert await wallets.get_balance(user.user_id, "USD") == Decimal("250")

    async def test_reference_of_an_order_debit(self, buyer, listing):
        order = await settlement_engine.settle(
            buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR"
        )

        with pytest.raises(ReferenceConflict):
            await apply_deposit_callback(
                _callback(buyer.user_id, reference=order.reference, amount="100")
            )

        assert await wallets.get_balance(buyer.user_id, "USD") == Decimal("900")
