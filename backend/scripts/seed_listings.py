"""Seed a treasury seller and open listings for every supported pair.

Actions per pair:
- Ensure the treasury user exists (fixed id, settles into USD)
- Create one active listing with TREASURY_INVENTORY of the source currency
  at the seed rate, unless the treasury already has an active listing for it

Usage:
  cd backend && python -m scripts.seed_listings
"""

import asyncio
import uuid
from decimal import Decimal
from typing import Dict, Tuple

from database import get_db_transaction, init_db
from database.repositories import ListingRepository, UserRepository
from models.core import Currency
from services import listings, wallets

TREASURY_USER_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
TREASURY_INVENTORY = Decimal("100000")
TREASURY_FEE_PERCENT = Decimal("1.5")
MIN_ORDER = Decimal("10")

# Target units per source unit
SEED_RATES: Dict[Tuple[str, str], Decimal] = {
    ("USD", "EUR"): Decimal("0.92"),
    ("EUR", "USD"): Decimal("1.08"),
    ("USD", "AOA"): Decimal("915"),
    ("USD", "ZAR"): Decimal("18.4"),
    ("ZAR", "NAD"): Decimal("1"),
    ("NAD", "ZAR"): Decimal("1"),
    ("EUR", "ZAR"): Decimal("19.9"),
}


async def get_or_create_treasury():
    """Return the treasury user, creating it if needed."""
    async with get_db_transaction() as session:
        existing = await UserRepository(session).get_user_or_none(TREASURY_USER_ID)
    if existing:
        return existing
    return await wallets.create_user(Currency.USD.value, TREASURY_USER_ID)


async def has_open_listing(seller_id: uuid.UUID, from_currency: str, to_currency: str) -> bool:
    async with get_db_transaction() as session:
        active = await ListingRepository(session).get_active_listings(from_currency, to_currency)
    return any(listing.seller_id == seller_id for listing in active)


async def main() -> None:
    await init_db()
    treasury = await get_or_create_treasury()

    created = 0
    for (from_currency, to_currency), rate in SEED_RATES.items():
        if await has_open_listing(treasury.user_id, from_currency, to_currency):
            print(f"Skipping {from_currency}/{to_currency}: listing already open.")
            continue
        await listings.create_listing(
            treasury.user_id,
            amount=TREASURY_INVENTORY,
            fee=TREASURY_FEE_PERCENT,
            exchange_rate=rate,
            min_amount=MIN_ORDER,
            from_currency=from_currency,
            to_currency=to_currency,
        )
        created += 1

    print(
        f"Seeded treasury {treasury.user_id} with {created} listings of {TREASURY_INVENTORY} "
        f"at {TREASURY_FEE_PERCENT}% fee."
    )


if __name__ == "__main__":
    asyncio.run(main())
