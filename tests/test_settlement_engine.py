"""
Settlement engine: validation order, atomic writes, pair binding and
inventory under concurrent orders
"""

import asyncio
import sqlite3
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from database.repositories import EarningRepository
from engine import check_amount_bounds, compute_settlement, settlement_engine
from enums import EarningType, ListingStatus, OrderStatus, TransactionType
from errors import (
    AccountCurrencyMismatch,
    AmountOutOfRange,
    CurrencyMismatch,
    InsufficientBalance,
    ListingUnavailable,
    NotFound,
    SettlementFailed,
    ValidationError,
)
from services import listings, payouts, wallets


class TestComputeSettlement:
    def test_amounts_for_rate_and_fee(self):
        exchanged, fee, net = compute_settlement(Decimal("100"), Decimal("0.9"), Decimal("2"))

        assert exchanged == Decimal("90")
        assert fee == Decimal("1.8")
        assert net == Decimal("88.2")

    def test_zero_fee(self):
        exchanged, fee, net = compute_settlement(Decimal("50"), Decimal("18.5"), Decimal("0"))

        assert exchanged == Decimal("925")
        assert fee == Decimal("0")
        assert net == exchanged


class TestSettle:
    async def test_settles_and_books_every_effect(self, buyer, seller, listing):
        """Order, wallet debit, both earnings and inventory move together"""
        order = await settlement_engine.settle(
            buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR"
        )

        assert order.status == OrderStatus.COMPLETED
        assert order.total_amount == Decimal("90")
        assert order.fee_amount == Decimal("1.8")
        assert order.net_amount == Decimal("88.2")

        refreshed = await listings.get_listing(listing.listing_id)
        assert refreshed.amount == Decimal("900")
        assert refreshed.status == ListingStatus.ACTIVE

        assert await wallets.get_balance(buyer.user_id, "USD") == Decimal("900")

        seller_earnings = await payouts.list_earnings(seller.user_id)
        assert len(seller_earnings) == 1
        assert seller_earnings[0].type == EarningType.EXCHANGE_SALE
        assert seller_earnings[0].currency == "EUR"
        assert seller_earnings[0].net_amount == Decimal("88.2")
        assert seller_earnings[0].fee == Decimal("1.8")

        buyer_earnings = await payouts.list_earnings(buyer.user_id)
        assert len(buyer_earnings) == 1
        assert buyer_earnings[0].type == EarningType.EXCHANGE_PURCHASE
        assert buyer_earnings[0].currency == "USD"
        assert buyer_earnings[0].net_amount == Decimal("100")

        transactions = await wallets.get_transactions(buyer.user_id)
        debit = next(t for t in transactions if t.type == TransactionType.EXCHANGE_BUY)
        assert debit.reference == order.reference
        assert debit.amount == Decimal("-100")
        assert debit.counterparty_id == seller.user_id

    async def test_order_is_readable_after_settlement(self, buyer, listing):
        order = await settlement_engine.settle(
            buyer.user_id, listing.listing_id, Decimal("20"), "USD", "EUR"
        )

        found = await settlement_engine.get_order(order.order_id)
        assert found.reference == order.reference
        assert [o.order_id for o in await settlement_engine.list_buyer_orders(buyer.user_id)] == [
            order.order_id
        ]
        assert len(await settlement_engine.list_listing_orders(listing.listing_id)) == 1

    async def test_exhausting_inventory_completes_listing(
        self, buyer, seller, create_listing
    ):
        listing = await create_listing(seller, amount=Decimal("100"), min_amount=Decimal("0"))

        await settlement_engine.settle(buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR")

        refreshed = await listings.get_listing(listing.listing_id)
        assert refreshed.amount == Decimal("0")
        assert refreshed.status == ListingStatus.COMPLETED

        with pytest.raises(ListingUnavailable):
            await settlement_engine.settle(
                buyer.user_id, listing.listing_id, Decimal("1"), "USD", "EUR"
            )


class TestRejections:
    async def test_below_minimum_writes_nothing(self, buyer, listing):
        with pytest.raises(AmountOutOfRange) as exc_info:
            await settlement_engine.settle(
                buyer.user_id, listing.listing_id, Decimal("5"), "USD", "EUR"
            )

        assert exc_info.value.bound == "minimum"
        assert exc_info.value.limit == Decimal("10")
        assert await wallets.get_balance(buyer.user_id, "USD") == Decimal("1000")
        assert await settlement_engine.list_buyer_orders(buyer.user_id) == []

    async def test_above_maximum(self, buyer, seller, create_listing):
        listing = await create_listing(seller, max_amount=Decimal("200"))

        with pytest.raises(AmountOutOfRange) as exc_info:
            await settlement_engine.settle(
                buyer.user_id, listing.listing_id, Decimal("300"), "USD", "EUR"
            )
        assert exc_info.value.bound == "maximum"

    async def test_maximum_above_inventory_reports_available(self, buyer, seller, create_listing):
        listing = await create_listing(
            seller, amount=Decimal("100"), max_amount=Decimal("500"), min_amount=Decimal("0")
        )

        with pytest.raises(AmountOutOfRange) as exc_info:
            await settlement_engine.settle(
                buyer.user_id, listing.listing_id, Decimal("150"), "USD", "EUR"
            )
        assert exc_info.value.bound == "available"
        assert exc_info.value.limit == Decimal("100")

    async def test_insufficient_balance_leaves_no_order(self, create_user, listing):
        poor_buyer = await create_user("EUR", {"USD": "50"})

        with pytest.raises(InsufficientBalance) as exc_info:
            await settlement_engine.settle(
                poor_buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR"
            )

        assert exc_info.value.shortfall == Decimal("50")
        assert await settlement_engine.list_buyer_orders(poor_buyer.user_id) == []
        assert (await listings.get_listing(listing.listing_id)).amount == Decimal("1000")

    async def test_pair_mismatch(self, buyer, listing):
        with pytest.raises(CurrencyMismatch):
            await settlement_engine.settle(
                buyer.user_id, listing.listing_id, Decimal("100"), "ZAR", "EUR"
            )

    async def test_pair_checked_before_account_currency(self, create_user, listing):
        """Both are wrong; the pair is reported first"""
        aoa_buyer = await create_user("AOA", {"ZAR": "1000"})

        with pytest.raises(CurrencyMismatch):
            await settlement_engine.settle(
                aoa_buyer.user_id, listing.listing_id, Decimal("100"), "ZAR", "AOA"
            )

    async def test_account_currency_mismatch(self, create_user, listing):
        aoa_buyer = await create_user("AOA", {"USD": "1000"})

        with pytest.raises(AccountCurrencyMismatch):
            await settlement_engine.settle(
                aoa_buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR"
            )

    async def test_paused_listing_unavailable(self, buyer, seller, listing):
        await listings.pause_listing(seller.user_id, listing.listing_id)

        with pytest.raises(ListingUnavailable):
            await settlement_engine.settle(
                buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR"
            )

    async def test_non_positive_amount(self, buyer, listing):
        with pytest.raises(ValidationError):
            await settlement_engine.settle(
                buyer.user_id, listing.listing_id, Decimal("0"), "USD", "EUR"
            )

    async def test_unknown_listing(self, buyer):
        with pytest.raises(NotFound):
            await settlement_engine.settle(buyer.user_id, uuid.uuid4(), Decimal("10"), "USD", "EUR")


class TestPairBinding:
    async def test_first_settlement_binds_pair(self, buyer, seller, create_user, create_listing):
        listing = await create_listing(seller, from_currency=None, to_currency=None)

        await settlement_engine.settle(buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR")

        bound = await listings.get_listing(listing.listing_id)
        assert (bound.from_currency, bound.to_currency) == ("USD", "EUR")

        zar_buyer = await create_user("EUR", {"ZAR": "1000"})
        with pytest.raises(CurrencyMismatch):
            await settlement_engine.settle(
                zar_buyer.user_id, listing.listing_id, Decimal("100"), "ZAR", "EUR"
            )

    async def test_rejected_settlement_does_not_bind(self, create_user, seller, create_listing):
        listing = await create_listing(seller, from_currency=None, to_currency=None)
        poor_buyer = await create_user("EUR", {"USD": "1"})

        with pytest.raises(InsufficientBalance):
            await settlement_engine.settle(
                poor_buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR"
            )

        unbound = await listings.get_listing(listing.listing_id)
        assert unbound.from_currency is None
        assert unbound.to_currency is None


class TestConcurrency:
    async def test_concurrent_orders_cannot_oversell(self, create_user, seller, create_listing):
        """Two orders of 60 against 100 left: exactly one wins"""
        listing = await create_listing(seller, amount=Decimal("100"), min_amount=Decimal("0"))
        first = await create_user("EUR", {"USD": "100"})
        second = await create_user("EUR", {"USD": "100"})

        results = await asyncio.gather(
            settlement_engine.settle(first.user_id, listing.listing_id, Decimal("60"), "USD", "EUR"),
            settlement_engine.settle(second.user_id, listing.listing_id, Decimal("60"), "USD", "EUR"),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], AmountOutOfRange)

        refreshed = await listings.get_listing(listing.listing_id)
        assert refreshed.amount == Decimal("40")
        assert len(await settlement_engine.list_listing_orders(listing.listing_id)) == 1

        balances = sorted(
            [
                await wallets.get_balance(first.user_id, "USD"),
                await wallets.get_balance(second.user_id, "USD"),
            ]
        )
        assert balances == [Decimal("40"), Decimal("100")]


class TestQuote:
    async def test_quote_matches_settlement_without_writing(self, listing):
        quote = await settlement_engine.quote(listing.listing_id, Decimal("100"))

        assert quote.exchanged_amount == Decimal("90")
        assert quote.fee_amount == Decimal("1.8")
        assert quote.net_amount == Decimal("88.2")
        assert (await listings.get_listing(listing.listing_id)).amount == Decimal("1000")


class TestAmountBounds:
    async def test_within_bounds_passes(self, listing):
        check_amount_bounds(listing, Decimal("10"))
        check_amount_bounds(listing, Decimal("1000"))


class TestExactAmounts:
    """Amounts that only fit exactly must still settle after earlier orders"""

    async def test_exact_remaining_inventory(self, buyer, seller, create_listing):
        listing = await create_listing(seller, amount=Decimal("0.3"), min_amount=Decimal("0"))

        await settlement_engine.settle(buyer.user_id, listing.listing_id, Decimal("0.1"), "USD", "EUR")
        await settlement_engine.settle(buyer.user_id, listing.listing_id, Decimal("0.2"), "USD", "EUR")

        refreshed = await listings.get_listing(listing.listing_id)
        assert refreshed.amount == Decimal("0")
        assert refreshed.status == ListingStatus.COMPLETED

    async def test_exact_remaining_balance(self, create_user, seller, create_listing):
        listing = await create_listing(seller, min_amount=Decimal("0"))
        buyer = await create_user("EUR", {"USD": "0.3"})

        await settlement_engine.settle(buyer.user_id, listing.listing_id, Decimal("0.1"), "USD", "EUR")
        await settlement_engine.settle(buyer.user_id, listing.listing_id, Decimal("0.2"), "USD", "EUR")

        assert await wallets.get_balance(buyer.user_id, "USD") == Decimal("0")
        assert await payouts.available_balance(seller.user_id, "EUR") == Decimal("0.2646")


class TestAtomicity:
    async def test_fault_after_order_written_rolls_everything_back(self, buyer, seller, listing):
        with patch.object(
            EarningRepository,
            "create_earning_without_commit",
            new_callable=AsyncMock,
            side_effect=RuntimeError("disk full"),
        ):
            with pytest.raises(SettlementFailed):
                await settlement_engine.settle(
                    buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR"
                )

        assert await settlement_engine.list_listing_orders(listing.listing_id) == []
        assert await payouts.list_earnings(seller.user_id) == []
        assert await payouts.list_earnings(buyer.user_id) == []
        assert (await listings.get_listing(listing.listing_id)).amount == Decimal("1000")
        assert await wallets.get_balance(buyer.user_id, "USD") == Decimal("1000")
        transactions = await wallets.get_transactions(buyer.user_id)
        assert [t for t in transactions if t.type == TransactionType.EXCHANGE_BUY] == []

    async def test_conflicted_attempt_leaves_no_trace(self, buyer, seller, listing):
        """A retried settlement books every effect exactly once"""
        original = EarningRepository.create_earning_without_commit
        calls = []

        async def locked_once(self, **kwargs):
            calls.append(kwargs["type"])
            if len(calls) == 1:
                raise OperationalError(
                    "INSERT INTO earnings", {}, sqlite3.OperationalError("database is locked")
                )
            return await original(self, **kwargs)

        with patch.object(EarningRepository, "create_earning_without_commit", locked_once):
            await settlement_engine.settle(
                buyer.user_id, listing.listing_id, Decimal("100"), "USD", "EUR"
            )

        assert len(await settlement_engine.list_listing_orders(listing.listing_id)) == 1
        assert len(await payouts.list_earnings(seller.user_id)) == 1
        assert (await listings.get_listing(listing.listing_id)).amount == Decimal("900")
        assert await wallets.get_balance(buyer.user_id, "USD") == Decimal("900")
