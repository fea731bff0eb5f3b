"""
Repository for exchange order operations.
"""

import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import desc, select

from database.models import Order
from enums import OrderStatus
from errors import NotFound


class OrderRepository:
    """
    Repository for order operations.
    Note: Methods do NOT commit - caller must manage transaction boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_order_without_commit(
        self,
        buyer_id: uuid.UUID,
        listing_id: uuid.UUID,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        exchange_rate: Decimal,
        fee_amount: Decimal,
        total_amount: Decimal,
        net_amount: Decimal,
        status: OrderStatus = OrderStatus.COMPLETED,
    ) -> Order:
        """
        Create order with a unique reference.
        Must be called within a transaction context - does NOT commit.
        """
        order_id = uuid.uuid4()
        order = Order(
            order_id=order_id,
            buyer_id=buyer_id,
            listing_id=listing_id,
            amount=amount,
            from_currency=from_currency,
            to_currency=to_currency,
            exchange_rate=exchange_rate,
            fee_amount=fee_amount,
            total_amount=total_amount,
            net_amount=net_amount,
            status=status,
            reference=f"ORD-{order_id.hex.upper()}",
        )
        self.session.add(order)
        await self.session.flush()  # Get ID but stay in transaction
        return order

    async def get_order(self, order_id: uuid.UUID) -> Order:
        """Get order by ID - raises NotFound"""
        order = await self.get_order_or_none(order_id)
        if order is None:
            raise NotFound("Order", order_id)
        return order

    async def get_order_or_none(self, order_id: uuid.UUID) -> Optional[Order]:
        """Get order by ID - returns None if not found"""
        result = await self.session.execute(select(Order).where(Order.order_id == order_id))
        return result.scalar_one_or_none()

    async def get_buyer_orders(self, buyer_id: uuid.UUID, limit: int = 50) -> List[Order]:
        """Orders placed by a buyer, most recent first"""
        result = await self.session.execute(
            select(Order)
            .where(Order.buyer_id == buyer_id)
            .order_by(desc(Order.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_listing_orders(self, listing_id: uuid.UUID) -> List[Order]:
        """Orders settled against a listing, oldest first"""
        result = await self.session.execute(
            select(Order).where(Order.listing_id == listing_id).order_by(Order.created_at)
        )
        return list(result.scalars().all())
