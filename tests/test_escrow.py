"""
Goods orders: escrow hold, release, refund and order payouts
"""

import sqlite3
from decimal import Decimal
from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from database.repositories import GoodsRepository, PayoutRepository
from enums import EscrowStatus, GoodsListingStatus, GoodsOrderStatus, PayoutStatus, TransactionType
from errors import (
    InvalidStateTransition,
    ListingUnavailable,
    PermissionDenied,
    ValidationError,
)
from services import escrow, wallets


class AcceptingRail:
    def __init__(self):
        self.disbursed = []

    async def disburse(self, payout, idempotency_key):
        self.disbursed.append(idempotency_key)


@pytest_asyncio.fixture
async def goods_seller(create_user):
    return await create_user("USD", {"USD": "10"})


@pytest_asyncio.fixture
async def goods_buyer(create_user):
    return await create_user("USD", {"USD": "1000"})


@pytest_asyncio.fixture
async def goods_listing(goods_seller):
    return await escrow.create_goods_listing(
        goods_seller.user_id, "Handwoven basket", Decimal("100"), 2, "USD"
    )


@pytest_asyncio.fixture
async def goods_order(goods_buyer, goods_listing):
    return await escrow.place_order(goods_buyer.user_id, goods_listing.goods_listing_id)


class TestPlaceOrder:
    async def test_holds_price_and_itemizes_fees(self, goods_buyer, goods_seller, goods_order):
        assert goods_order.status == GoodsOrderStatus.PENDING
        assert goods_order.buyer_fee == Decimal("2")
        assert goods_order.total_amount == Decimal("102")
        assert await wallets.get_balance(goods_buyer.user_id, "USD") == Decimal("898")

        detail = await escrow.get_order_detail(goods_buyer.user_id, goods_order.goods_order_id)
        assert detail.escrow.status == EscrowStatus.HELD
        assert detail.escrow.amount == Decimal("100")
        assert detail.fee.listing_fee == Decimal("1")
        assert detail.fee.seller_commission == Decimal("5")
        assert detail.fee.buyer_fee == Decimal("2")

        transactions = await wallets.get_transactions(goods_buyer.user_id)
        hold = next(t for t in transactions if t.type == TransactionType.ESCROW_HOLD)
        assert hold.reference == goods_order.reference
        assert hold.amount == Decimal("-102")

    async def test_sold_out_listing_rejects_orders(self, create_user, goods_seller):
        listing = await escrow.create_goods_listing(
            goods_seller.user_id, "Single print", Decimal("40"), 1, "USD"
        )
        first = await create_user("USD", {"USD": "100"})
        second = await create_user("USD", {"USD": "100"})

        await escrow.place_order(first.user_id, listing.goods_listing_id)

        with pytest.raises(ListingUnavailable):
            await escrow.place_order(second.user_id, listing.goods_listing_id)
        assert await wallets.get_balance(second.user_id, "USD") == Decimal("100")
        assert await escrow.list_goods_listings() == []

    async def test_seller_cannot_buy_own_listing(self, goods_seller, goods_listing):
        with pytest.raises(PermissionDenied):
            await escrow.place_order(goods_seller.user_id, goods_listing.goods_listing_id)


class TestCompleteAndRefund:
    async def test_complete_releases_price_less_commission(self, goods_seller, goods_order):
        completed = await escrow.complete_order(goods_seller.user_id, goods_order.goods_order_id)

        assert completed.status == GoodsOrderStatus.COMPLETED
        assert await wallets.get_balance(goods_seller.user_id, "USD") == Decimal("105")

        detail = await escrow.get_order_detail(goods_seller.user_id, goods_order.goods_order_id)
        assert detail.escrow.status == EscrowStatus.RELEASED
        assert detail.escrow.released_at is not None

    async def test_refund_returns_everything_and_restocks(
        self, goods_buyer, goods_seller, goods_listing, goods_order
    ):
        refunded = await escrow.refund_order(goods_seller.user_id, goods_order.goods_order_id)

        assert refunded.status == GoodsOrderStatus.REFUNDED
        assert await wallets.get_balance(goods_buyer.user_id, "USD") == Decimal("1000")

        listings = await escrow.list_goods_listings()
        assert [(item.goods_listing_id, item.quantity) for item in listings] == [
            (goods_listing.goods_listing_id, 2)
        ]

    async def test_refund_reactivates_sold_listing(self, create_user, goods_seller):
        listing = await escrow.create_goods_listing(
            goods_seller.user_id, "Single print", Decimal("40"), 1, "USD"
        )
        buyer = await create_user("USD", {"USD": "100"})
        order = await escrow.place_order(buyer.user_id, listing.goods_listing_id)

        await escrow.refund_order(goods_seller.user_id, order.goods_order_id)

        listings = await escrow.list_goods_listings()
        assert listings[0].status == GoodsListingStatus.ACTIVE
        assert listings[0].quantity == 1

    async def test_escrow_closes_once(self, goods_seller, goods_order):
        await escrow.complete_order(goods_seller.user_id, goods_order.goods_order_id)

        with pytest.raises(InvalidStateTransition):
            await escrow.refund_order(goods_seller.user_id, goods_order.goods_order_id)

    async def test_buyer_cannot_release(self, goods_buyer, goods_order):
        with pytest.raises(PermissionDenied):
            await escrow.complete_order(goods_buyer.user_id, goods_order.goods_order_id)

    async def test_order_detail_hidden_from_strangers(self, create_user, goods_order):
        stranger = await create_user("USD")

        with pytest.raises(PermissionDenied):
            await escrow.get_order_detail(stranger.user_id, goods_order.goods_order_id)


class TestOrderPayout:
    async def test_payout_deducts_fee(self, goods_seller, goods_order):
        await escrow.complete_order(goods_seller.user_id, goods_order.goods_order_id)

        payout = await escrow.request_order_payout(
            goods_seller.user_id, goods_order.goods_order_id, "Test Bank *****6789"
        )

        assert payout.status == PayoutStatus.PENDING
        assert payout.payout_fee == Decimal("3")
        assert payout.amount == Decimal("97")
        assert payout.is_cross_border is False
        assert payout.converted_amount is None
        assert await wallets.get_balance(goods_seller.user_id, "USD") == Decimal("102")

        detail = await escrow.get_order_detail(goods_seller.user_id, goods_order.goods_order_id)
        assert detail.fee.payout_fee == Decimal("3")

        with pytest.raises(ValidationError):
            await escrow.request_order_payout(
                goods_seller.user_id, goods_order.goods_order_id, "Test Bank *****6789"
            )

    async def test_cross_border_payout_converts(self, goods_seller, goods_order):
        await escrow.complete_order(goods_seller.user_id, goods_order.goods_order_id)

        payout = await escrow.request_order_payout(
            goods_seller.user_id,
            goods_order.goods_order_id,
            "Test Bank *****6789",
            is_cross_border=True,
            converted_currency="NAD",
        )

        assert payout.conversion_rate == Decimal("1.1")
        assert payout.amount == Decimal("97")
        assert payout.currency == "USD"
        assert payout.converted_amount == Decimal("106.7")
        assert payout.converted_currency == "NAD"

    async def test_cross_border_needs_converted_currency(self, goods_seller, goods_order):
        await escrow.complete_order(goods_seller.user_id, goods_order.goods_order_id)

        with pytest.raises(ValidationError):
            await escrow.request_order_payout(
                goods_seller.user_id,
                goods_order.goods_order_id,
                "Test Bank *****6789",
                is_cross_border=True,
            )

        assert await wallets.get_balance(goods_seller.user_id, "USD") == Decimal("105")

    async def test_payout_requires_released_escrow(self, goods_seller, goods_order):
        with pytest.raises(InvalidStateTransition):
            await escrow.request_order_payout(
                goods_seller.user_id, goods_order.goods_order_id, "Test Bank *****6789"
            )

    async def test_process_order_payout(self, goods_seller, goods_buyer, goods_order):
        await escrow.complete_order(goods_seller.user_id, goods_order.goods_order_id)
        payout = await escrow.request_order_payout(
            goods_seller.user_id, goods_order.goods_order_id, "Test Bank *****6789"
        )

        with pytest.raises(PermissionDenied):
            await escrow.process_order_payout(goods_buyer.user_id, payout.payout_id, rail=AcceptingRail())

        rail = AcceptingRail()
        processed = await escrow.process_order_payout(goods_seller.user_id, payout.payout_id, rail=rail)
        assert processed.status == PayoutStatus.COMPLETED
        assert processed.processed_at is not None
        assert rail.disbursed == [payout.reference]


class TestConflicts:
    async def test_locked_database_is_retried(self, goods_buyer, goods_listing):
        original = GoodsRepository.hold_escrow_without_commit
        calls = []

        async def locked_once(self, order):
            calls.append(order.reference)
            if len(calls) == 1:
                raise OperationalError(
                    "INSERT INTO escrow", {}, sqlite3.OperationalError("database is locked")
                )
            return await original(self, order)

        with patch.object(GoodsRepository, "hold_escrow_without_commit", locked_once):
            order = await escrow.place_order(goods_buyer.user_id, goods_listing.goods_listing_id)

        assert len(calls) == 2
        assert await wallets.get_balance(goods_buyer.user_id, "USD") == Decimal("898")
        assert [o.goods_order_id for o in await escrow.list_user_orders(goods_buyer.user_id)] == [
            order.goods_order_id
        ]
        listings = await escrow.list_goods_listings()
        assert listings[0].quantity == 1

    async def test_duplicate_payout_losing_the_insert_is_rejected(self, goods_seller, goods_order):
        """A second request that misses the first payout still cannot create another"""
        await escrow.complete_order(goods_seller.user_id, goods_order.goods_order_id)
        await escrow.request_order_payout(
            goods_seller.user_id, goods_order.goods_order_id, "Test Bank *****6789"
        )
        original = PayoutRepository.get_order_payout_or_none
        lookups = []

        async def stale_once(self, goods_order_id):
            lookups.append(goods_order_id)
            if len(lookups) == 1:
                return None
            return await original(self, goods_order_id)

        with patch.object(PayoutRepository, "get_order_payout_or_none", stale_once):
            with pytest.raises(ValidationError):
                await escrow.request_order_payout(
                    goods_seller.user_id, goods_order.goods_order_id, "Test Bank *****6789"
                )

        assert len(lookups) == 2
        assert await wallets.get_balance(goods_seller.user_id, "USD") == Decimal("102")
