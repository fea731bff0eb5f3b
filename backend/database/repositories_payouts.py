"""
Repository for payouts.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import desc, select

from database.models import Payout
from enums import PayoutStatus
from errors import InvalidStateTransition, NotFound

# Allowed payout status moves; completed and failed are terminal.
# processing -> pending is a rail rejection handing the payout back.
PAYOUT_TRANSITIONS = {
    PayoutStatus.PENDING: {PayoutStatus.PROCESSING, PayoutStatus.FAILED},
    PayoutStatus.PROCESSING: {PayoutStatus.PENDING, PayoutStatus.COMPLETED, PayoutStatus.FAILED},
    PayoutStatus.COMPLETED: set(),
    PayoutStatus.FAILED: set(),
}


class PayoutRepository:
    """
    Repository for payouts.
    Note: Methods do NOT commit - caller must manage transaction boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_payout_without_commit(
        self,
        user_id: uuid.UUID,
        amount: Decimal,
        currency: str,
        payout_method_id: Optional[uuid.UUID] = None,
        goods_order_id: Optional[uuid.UUID] = None,
        payout_fee: Decimal = Decimal("0"),
        is_cross_border: bool = False,
        conversion_rate: Optional[Decimal] = None,
        converted_amount: Optional[Decimal] = None,
        converted_currency: Optional[str] = None,
        linked_account: Optional[str] = None,
    ) -> Payout:
        """
        Create a pending payout.
        Must be called within a transaction context - does NOT commit.
        """
        payout_id = uuid.uuid4()
        payout = Payout(
            payout_id=payout_id,
            user_id=user_id,
            goods_order_id=goods_order_id,
            payout_method_id=payout_method_id,
            currency=currency,
            amount=amount,
            status=PayoutStatus.PENDING,
            is_cross_border=is_cross_border,
            conversion_rate=conversion_rate,
            converted_amount=converted_amount,
            converted_currency=converted_currency,
            payout_fee=payout_fee,
            linked_account=linked_account,
            reference=f"PAYOUT-{payout_id.hex.upper()}",
        )
        self.session.add(payout)
        await self.session.flush()
        return payout

    async def get_payout(self, payout_id: uuid.UUID, lock: bool = False) -> Payout:
        """Get payout - raises NotFound"""
        stmt = select(Payout).where(Payout.payout_id == payout_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        payout = result.scalar_one_or_none()
        if payout is None:
            raise NotFound("Payout", payout_id)
        return payout

    async def get_order_payout_or_none(self, goods_order_id: uuid.UUID) -> Optional[Payout]:
        result = await self.session.execute(
            select(Payout).where(Payout.goods_order_id == goods_order_id)
        )
        return result.scalar_one_or_none()

    async def get_user_payouts(self, user_id: uuid.UUID, limit: int = 20) -> List[Payout]:
        """Payout history, most recent first"""
        result = await self.session.execute(
            select(Payout)
            .where(Payout.user_id == user_id)
            .order_by(desc(Payout.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def transition_without_commit(self, payout: Payout, target: PayoutStatus) -> Payout:
        """Move payout to `target`, stamping processed_at on completion"""
        if target not in PAYOUT_TRANSITIONS[payout.status]:
            raise InvalidStateTransition("payout", payout.status.value, target.value)
        payout.status = target
        if target == PayoutStatus.COMPLETED:
            payout.processed_at = datetime.now(timezone.utc)
        await self.session.flush()
        return payout
