"""
Repository for exchange listings.
"""

import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import and_, desc, select

from database.models import Listing
from enums import ListingStatus
from errors import CurrencyMismatch, InsufficientListingAmount, NotFound


class ListingRepository:
    """
    Repository for exchange listings.
    Note: Methods do NOT commit - caller must manage transaction boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_listing_without_commit(
        self,
        seller_id: uuid.UUID,
        amount: Decimal,
        fee: Decimal,
        exchange_rate: Decimal,
        min_amount: Decimal,
        max_amount: Optional[Decimal] = None,
        from_currency: Optional[str] = None,
        to_currency: Optional[str] = None,
    ) -> Listing:
        """
        Create an active listing.
        Must be called within a transaction context - does NOT commit.
        """
        listing = Listing(
            seller_id=seller_id,
            from_currency=from_currency,
            to_currency=to_currency,
            amount=amount,
            initial_amount=amount,
            min_amount=min_amount,
            max_amount=max_amount,
            exchange_rate=exchange_rate,
            fee=fee,
            status=ListingStatus.ACTIVE,
        )
        self.session.add(listing)
        await self.session.flush()
        return listing

    async def get_listing(self, listing_id: uuid.UUID, lock: bool = False) -> Listing:
        """Get listing - raises NotFound"""
        listing = await self.get_listing_or_none(listing_id, lock=lock)
        if listing is None:
            raise NotFound("Listing", listing_id)
        return listing

    async def get_listing_or_none(
        self, listing_id: uuid.UUID, lock: bool = False
    ) -> Optional[Listing]:
        """Get listing - returns None if not found. `lock` takes a row lock (FOR UPDATE)."""
        stmt = select(Listing).where(Listing.listing_id == listing_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_listings(
        self, from_currency: Optional[str] = None, to_currency: Optional[str] = None
    ) -> List[Listing]:
        """Active listings with inventory left, optionally filtered by pair"""
        stmt = select(Listing).where(
            and_(Listing.status == ListingStatus.ACTIVE, Listing.amount > 0)
        )
        if from_currency:
            stmt = stmt.where(Listing.from_currency == from_currency)
        if to_currency:
            stmt = stmt.where(Listing.to_currency == to_currency)
        result = await self.session.execute(stmt.order_by(desc(Listing.created_at)))
        return list(result.scalars().all())

    async def get_seller_listings(self, seller_id: uuid.UUID) -> List[Listing]:
        result = await self.session.execute(
            select(Listing)
            .where(Listing.seller_id == seller_id)
            .order_by(desc(Listing.created_at))
        )
        return list(result.scalars().all())

    async def bind_currency_pair_without_commit(
        self, listing: Listing, from_currency: str, to_currency: str
    ) -> Listing:
        """
        Bind the pair if unset, then require an exact match.
        First writer wins - the guarded UPDATE only touches an unbound row.
        """
        if not listing.is_pair_bound():
            await self.session.execute(
                update(Listing)
                .where(Listing.listing_id == listing.listing_id)
                .where(Listing.from_currency.is_(None))
                .values(from_currency=from_currency, to_currency=to_currency)
                .execution_options(synchronize_session=False)
            )
            await self.session.refresh(listing)

        if listing.from_currency != from_currency or listing.to_currency != to_currency:
            raise CurrencyMismatch(expected=listing.pair, provided=f"{from_currency}/{to_currency}")
        return listing

    async def reserve_without_commit(self, listing_id: uuid.UUID, amount: Decimal) -> Listing:
        """
        Atomically take `amount` out of the listing inventory.
        Raises InsufficientListingAmount when less is left. Marks the listing
        completed once the inventory reaches zero.
        """
        result = await self.session.execute(
            update(Listing)
            .where(Listing.listing_id == listing_id)
            .where(Listing.amount >= amount)
            .values(amount=Listing.amount - amount)
            .execution_options(synchronize_session=False)
        )
        listing = await self.get_listing(listing_id)
        await self.session.refresh(listing)

        if result.rowcount != 1:
            raise InsufficientListingAmount(requested=amount, available=listing.amount)

        if listing.amount <= 0:
            listing.status = ListingStatus.COMPLETED
            await self.session.flush()
        return listing

    async def set_status_without_commit(
        self, listing: Listing, status: ListingStatus
    ) -> Listing:
        listing.status = status
        await self.session.flush()
        return listing
