"""
Exchange listing service: creation, seller lifecycle and queries.
"""
import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from database import get_db_transaction
from database.models import Listing
from database.repositories import ListingRepository, UserRepository
from enums import ListingStatus
from errors import InvalidStateTransition, PermissionDenied, ValidationError
from models.core import Currency, quantize

logger = logging.getLogger(__name__)


async def create_listing(
    seller_id: UUID,
    amount: Decimal,
    fee: Decimal,
    exchange_rate: Decimal,
    min_amount: Decimal = Decimal("0"),
    max_amount: Optional[Decimal] = None,
    from_currency: Optional[str] = None,
    to_currency: Optional[str] = None,
) -> Listing:
    """
    Create an active listing.

    Args:
        seller_id: Owner of the listing
        amount: Inventory in the source currency
        fee: Platform fee percentage taken from the exchanged amount
        exchange_rate: Target units per source unit
        min_amount: Smallest order accepted
        max_amount: Largest order accepted, None for unbounded
        from_currency, to_currency: Pair, or None to let the first order bind it

    Returns:
        The persisted Listing
    """
    amount, exchange_rate, fee = quantize(amount), quantize(exchange_rate), quantize(fee)
    min_amount = quantize(min_amount)
    max_amount = quantize(max_amount) if max_amount is not None else None

    if amount <= 0:
        raise ValidationError("Listing amount must be positive", amount=amount)
    if exchange_rate <= 0:
        raise ValidationError("Exchange rate must be positive", exchange_rate=exchange_rate)
    if fee < 0 or fee >= 100:
        raise ValidationError("Fee must be between 0 and 100 percent", fee=fee)
    if min_amount < 0:
        raise ValidationError("Minimum amount cannot be negative", min_amount=min_amount)
    if max_amount is not None and min_amount > max_amount:
        raise ValidationError(
            "Minimum amount cannot exceed maximum amount",
            min_amount=min_amount,
            max_amount=max_amount,
        )
    if (from_currency is None) != (to_currency is None):
        raise ValidationError("Currency pair must be set completely or not at all")
    for code in (from_currency, to_currency):
        if code is not None and not Currency.is_valid(code):
            raise ValidationError(f"Unsupported currency: {code}", currency=code)

    async with get_db_transaction() as session:
        await UserRepository(session).get_user(seller_id)
        listing = await ListingRepository(session).create_listing_without_commit(
            seller_id=seller_id,
            amount=amount,
            fee=fee,
            exchange_rate=exchange_rate,
            min_amount=min_amount,
            max_amount=max_amount,
            from_currency=from_currency,
            to_currency=to_currency,
        )

    logger.info(f"Listing {listing.listing_id} created by {seller_id}: {amount} at {exchange_rate}")
    return listing


async def pause_listing(seller_id: UUID, listing_id: UUID) -> Listing:
    """active -> paused"""
    return await _transition(seller_id, listing_id, {ListingStatus.ACTIVE}, ListingStatus.PAUSED)


async def resume_listing(seller_id: UUID, listing_id: UUID) -> Listing:
    """paused -> active"""
    return await _transition(seller_id, listing_id, {ListingStatus.PAUSED}, ListingStatus.ACTIVE)


async def deactivate_listing(seller_id: UUID, listing_id: UUID) -> Listing:
    """active | paused -> expired. Inventory stays on the row for the record."""
    return await _transition(
        seller_id, listing_id, {ListingStatus.ACTIVE, ListingStatus.PAUSED}, ListingStatus.EXPIRED
    )


async def get_listing(listing_id: UUID) -> Listing:
    async with get_db_transaction() as session:
        return await ListingRepository(session).get_listing(listing_id)


async def list_active_listings(
    from_currency: Optional[str] = None, to_currency: Optional[str] = None
) -> List[Listing]:
    async with get_db_transaction() as session:
        return await ListingRepository(session).get_active_listings(from_currency, to_currency)


async def list_seller_listings(seller_id: UUID) -> List[Listing]:
    async with get_db_transaction() as session:
        return await ListingRepository(session).get_seller_listings(seller_id)


async def _transition(
    seller_id: UUID, listing_id: UUID, allowed: set, target: ListingStatus
) -> Listing:
    async with get_db_transaction() as session:
        repo = ListingRepository(session)
        listing = await repo.get_listing(listing_id, lock=True)

        if listing.seller_id != seller_id:
            raise PermissionDenied(f"Listing {listing_id} not owned by {seller_id}")
        if listing.status not in allowed:
            raise InvalidStateTransition("listing", listing.status.value, target.value)

        listing = await repo.set_status_without_commit(listing, target)

    logger.info(f"Listing {listing_id} -> {target.value}")
    return listing
