"""
Repository for goods listings, goods orders, escrow and fees.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import and_, desc, select

from database.models import Escrow, Fee, GoodsListing, GoodsOrder
from enums import EscrowStatus, GoodsListingStatus, GoodsOrderStatus
from errors import InvalidStateTransition, ListingUnavailable, NotFound


class GoodsRepository:
    """
    Repository for the goods-order variant.
    Note: Methods do NOT commit - caller must manage transaction boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # Listings

    async def create_listing_without_commit(
        self, seller_id: uuid.UUID, title: str, price: Decimal, quantity: int, currency: str
    ) -> GoodsListing:
        listing = GoodsListing(
            seller_id=seller_id,
            title=title,
            price=price,
            quantity=quantity,
            currency=currency,
            status=GoodsListingStatus.ACTIVE,
        )
        self.session.add(listing)
        await self.session.flush()
        return listing

    async def get_listing(self, goods_listing_id: uuid.UUID, lock: bool = False) -> GoodsListing:
        """Get goods listing - raises NotFound"""
        stmt = select(GoodsListing).where(GoodsListing.goods_listing_id == goods_listing_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        listing = result.scalar_one_or_none()
        if listing is None:
            raise NotFound("GoodsListing", goods_listing_id)
        return listing

    async def get_active_listings(self) -> List[GoodsListing]:
        result = await self.session.execute(
            select(GoodsListing)
            .where(and_(GoodsListing.status == GoodsListingStatus.ACTIVE, GoodsListing.quantity > 0))
            .order_by(desc(GoodsListing.created_at))
        )
        return list(result.scalars().all())

    async def take_unit_without_commit(self, goods_listing_id: uuid.UUID) -> GoodsListing:
        """Decrement stock by one; listing becomes sold at zero"""
        result = await self.session.execute(
            update(GoodsListing)
            .where(GoodsListing.goods_listing_id == goods_listing_id)
            .where(GoodsListing.status == GoodsListingStatus.ACTIVE)
            .where(GoodsListing.quantity > 0)
            .values(quantity=GoodsListing.quantity - 1)
            .execution_options(synchronize_session=False)
        )
        listing = await self.get_listing(goods_listing_id)
        await self.session.refresh(listing)
        if result.rowcount != 1:
            raise ListingUnavailable(goods_listing_id, listing.status.value)

        if listing.quantity == 0:
            listing.status = GoodsListingStatus.SOLD
            await self.session.flush()
        return listing

    async def restore_unit_without_commit(self, goods_listing_id: uuid.UUID) -> GoodsListing:
        """Put one unit back; a sold-out listing becomes active again"""
        listing = await self.get_listing(goods_listing_id, lock=True)
        listing.quantity += 1
        if listing.status == GoodsListingStatus.SOLD:
            listing.status = GoodsListingStatus.ACTIVE
        await self.session.flush()
        return listing

    # Orders

    async def create_order_without_commit(
        self,
        buyer_id: uuid.UUID,
        listing: GoodsListing,
        buyer_fee: Decimal,
    ) -> GoodsOrder:
        goods_order_id = uuid.uuid4()
        order = GoodsOrder(
            goods_order_id=goods_order_id,
            buyer_id=buyer_id,
            seller_id=listing.seller_id,
            goods_listing_id=listing.goods_listing_id,
            currency=listing.currency,
            price=listing.price,
            buyer_fee=buyer_fee,
            total_amount=listing.price + buyer_fee,
            status=GoodsOrderStatus.PENDING,
            reference=f"GO-{goods_order_id.hex.upper()}",
        )
        self.session.add(order)
        await self.session.flush()
        return order

    async def get_order(self, goods_order_id: uuid.UUID, lock: bool = False) -> GoodsOrder:
        """Get goods order - raises NotFound"""
        stmt = select(GoodsOrder).where(GoodsOrder.goods_order_id == goods_order_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound("GoodsOrder", goods_order_id)
        return order

    async def get_user_orders(self, user_id: uuid.UUID) -> List[GoodsOrder]:
        """Orders where the user is buyer or seller"""
        result = await self.session.execute(
            select(GoodsOrder)
            .where((GoodsOrder.buyer_id == user_id) | (GoodsOrder.seller_id == user_id))
            .order_by(desc(GoodsOrder.created_at))
        )
        return list(result.scalars().all())

    # Escrow and fees

    async def hold_escrow_without_commit(self, order: GoodsOrder) -> Escrow:
        escrow = Escrow(
            goods_order_id=order.goods_order_id,
            amount=order.price,
            status=EscrowStatus.HELD,
            held_at=datetime.now(timezone.utc),
        )
        self.session.add(escrow)
        await self.session.flush()
        return escrow

    async def get_escrow(self, goods_order_id: uuid.UUID, lock: bool = False) -> Escrow:
        stmt = select(Escrow).where(Escrow.goods_order_id == goods_order_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        escrow = result.scalar_one_or_none()
        if escrow is None:
            raise NotFound("Escrow", goods_order_id)
        return escrow

    async def close_escrow_without_commit(self, escrow: Escrow, target: EscrowStatus) -> Escrow:
        """held -> released | refunded"""
        if escrow.status != EscrowStatus.HELD or target == EscrowStatus.HELD:
            raise InvalidStateTransition("escrow", escrow.status.value, target.value)
        now = datetime.now(timezone.utc)
        escrow.status = target
        if target == EscrowStatus.RELEASED:
            escrow.released_at = now
        else:
            escrow.refunded_at = now
        await self.session.flush()
        return escrow

    async def create_fee_without_commit(
        self,
        goods_order_id: uuid.UUID,
        listing_fee: Decimal,
        seller_commission: Decimal,
        buyer_fee: Decimal,
    ) -> Fee:
        fee = Fee(
            goods_order_id=goods_order_id,
            listing_fee=listing_fee,
            seller_commission=seller_commission,
            buyer_fee=buyer_fee,
            payout_fee=Decimal("0"),
        )
        fee.recompute_total()
        self.session.add(fee)
        await self.session.flush()
        return fee

    async def get_fee(self, goods_order_id: uuid.UUID, lock: bool = False) -> Fee:
        stmt = select(Fee).where(Fee.goods_order_id == goods_order_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        fee = result.scalar_one_or_none()
        if fee is None:
            raise NotFound("Fee", goods_order_id)
        return fee

    async def set_payout_fee_without_commit(self, fee: Fee, payout_fee: Decimal) -> Fee:
        fee.payout_fee = payout_fee
        fee.recompute_total()
        await self.session.flush()
        return fee

    async def set_order_status_without_commit(
        self, order: GoodsOrder, status: GoodsOrderStatus
    ) -> GoodsOrder:
        order.status = status
        await self.session.flush()
        return order
