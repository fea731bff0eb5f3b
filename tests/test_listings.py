"""
Listing creation rules and seller lifecycle
"""

import uuid
from decimal import Decimal

import pytest

from enums import ListingStatus
from errors import InvalidStateTransition, NotFound, PermissionDenied, ValidationError
from services import listings


class TestCreateListing:
    async def test_creates_active_listing(self, seller, create_listing):
        listing = await create_listing(seller)

        assert listing.status == ListingStatus.ACTIVE
        assert listing.amount == Decimal("1000")
        assert listing.initial_amount == Decimal("1000")
        assert listing.pair == "USD/EUR"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"amount": Decimal("0")},
            {"exchange_rate": Decimal("-1")},
            {"fee": Decimal("100")},
            {"min_amount": Decimal("500"), "max_amount": Decimal("100")},
            {"from_currency": "USD", "to_currency": None},
            {"from_currency": "GBP", "to_currency": "EUR"},
        ],
    )
    async def test_rejects_invalid_terms(self, seller, create_listing, overrides):
        with pytest.raises(ValidationError):
            await create_listing(seller, **overrides)

    async def test_unknown_seller(self, db):
        with pytest.raises(NotFound):
            await listings.create_listing(
                uuid.uuid4(), amount=Decimal("10"), fee=Decimal("1"), exchange_rate=Decimal("2")
            )


class TestLifecycle:
    async def test_pause_resume_deactivate(self, seller, listing):
        paused = await listings.pause_listing(seller.user_id, listing.listing_id)
        assert paused.status == ListingStatus.PAUSED
        assert await listings.list_active_listings() == []

        resumed = await listings.resume_listing(seller.user_id, listing.listing_id)
        assert resumed.status == ListingStatus.ACTIVE

        expired = await listings.deactivate_listing(seller.user_id, listing.listing_id)
        assert expired.status == ListingStatus.EXPIRED
        assert expired.amount == Decimal("1000")

    async def test_expired_listing_cannot_resume(self, seller, listing):
        await listings.deactivate_listing(seller.user_id, listing.listing_id)

        with pytest.raises(InvalidStateTransition):
            await listings.resume_listing(seller.user_id, listing.listing_id)

    async def test_only_owner_can_pause(self, buyer, listing):
        with pytest.raises(PermissionDenied):
            await listings.pause_listing(buyer.user_id, listing.listing_id)


class TestQueries:
    async def test_active_listings_filter_by_pair(self, seller, create_listing):
        usd_eur = await create_listing(seller)
        await create_listing(seller, from_currency="ZAR", to_currency="NAD")

        found = await listings.list_active_listings("USD", "EUR")
        assert [listing.listing_id for listing in found] == [usd_eur.listing_id]
        assert len(await listings.list_seller_listings(seller.user_id)) == 2
