"""
Repository for earnings.
"""
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import and_, desc, func, select

from database.models import Earning
from enums import EarningStatus, EarningType
from errors import InsufficientBalance, InvalidStateTransition


class EarningRepository:
    """
    Repository for earnings.
    Note: Methods do NOT commit - caller must manage transaction boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_earning_without_commit(
        self,
        user_id: uuid.UUID,
        order_id: Optional[uuid.UUID],
        currency: str,
        amount: Decimal,
        fee: Decimal,
        net_amount: Decimal,
        type: EarningType,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Earning:
        """Create an available earning"""
        earning = Earning(
            user_id=user_id,
            order_id=order_id,
            currency=currency,
            amount=amount,
            fee=fee,
            net_amount=net_amount,
            type=type,
            status=EarningStatus.AVAILABLE,
            metadata_=metadata or {},
        )
        self.session.add(earning)
        await self.session.flush()
        return earning

    async def get_order_earnings(self, order_id: uuid.UUID) -> List[Earning]:
        result = await self.session.execute(
            select(Earning).where(Earning.order_id == order_id).order_by(Earning.created_at)
        )
        return list(result.scalars().all())

    async def get_user_earnings(
        self, user_id: uuid.UUID, status: Optional[EarningStatus] = None, limit: int = 50
    ) -> List[Earning]:
        """Most recent first"""
        stmt = select(Earning).where(Earning.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Earning.status == status)
        result = await self.session.execute(stmt.order_by(desc(Earning.created_at)).limit(limit))
        return list(result.scalars().all())

    async def get_available_balance(self, user_id: uuid.UUID, currency: str) -> Decimal:
        """Sum of available net amounts in one currency"""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Earning.net_amount), 0)).where(
                and_(
                    Earning.user_id == user_id,
                    Earning.currency == currency,
                    Earning.status == EarningStatus.AVAILABLE,
                )
            )
        )
        return Decimal(str(result.scalar() or 0))

    async def get_totals_by_currency(self, user_id: uuid.UUID) -> Dict[str, Dict[str, Decimal]]:
        """{currency: {status: total net}} across all statuses"""
        result = await self.session.execute(
            select(Earning.currency, Earning.status, func.sum(Earning.net_amount))
            .where(Earning.user_id == user_id)
            .group_by(Earning.currency, Earning.status)
        )
        totals: Dict[str, Dict[str, Decimal]] = {}
        for currency, status, total in result.all():
            bucket = totals.setdefault(
                currency, {state.value: Decimal("0") for state in EarningStatus}
            )
            bucket[EarningStatus(status).value] = Decimal(str(total or 0))
        return totals

    async def claim_for_payout_without_commit(
        self, user_id: uuid.UUID, currency: str, amount: Decimal, payout_id: uuid.UUID
    ) -> List[Earning]:
        """
        Move available earnings to processing, oldest first, until exactly
        `amount` is covered. The last earning is split when it overshoots:
        the claimed part keeps the row, the remainder becomes a new
        available earning.
        """
        result = await self.session.execute(
            select(Earning)
            .where(
                and_(
                    Earning.user_id == user_id,
                    Earning.currency == currency,
                    Earning.status == EarningStatus.AVAILABLE,
                )
            )
            .order_by(Earning.created_at, Earning.earning_id)
            .with_for_update()
        )
        candidates = list(result.scalars().all())

        available = sum((e.net_amount for e in candidates), Decimal("0"))
        if available < amount:
            raise InsufficientBalance(required=amount, available=available, currency=currency)

        claimed: List[Earning] = []
        remaining = amount
        for earning in candidates:
            if remaining <= 0:
                break

            if earning.net_amount > remaining:
                await self._split_without_commit(earning, remaining)

            remaining -= earning.net_amount
            earning.status = EarningStatus.PROCESSING
            earning.payout_id = payout_id
            claimed.append(earning)

        await self.session.flush()
        return claimed

    async def get_payout_earnings(self, payout_id: uuid.UUID) -> List[Earning]:
        result = await self.session.execute(
            select(Earning)
            .where(Earning.payout_id == payout_id)
            .order_by(Earning.created_at)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def mark_paid_without_commit(self, payout_id: uuid.UUID) -> List[Earning]:
        """processing -> paid for every earning claimed by the payout"""
        earnings = await self.get_payout_earnings(payout_id)
        for earning in earnings:
            if earning.status != EarningStatus.PROCESSING:
                raise InvalidStateTransition("earning", earning.status.value, EarningStatus.PAID.value)
            earning.status = EarningStatus.PAID
        await self.session.flush()
        return earnings

    async def release_claim_without_commit(self, payout_id: uuid.UUID) -> List[Earning]:
        """Return earnings of a failed payout to available"""
        earnings = await self.get_payout_earnings(payout_id)
        for earning in earnings:
            earning.status = EarningStatus.AVAILABLE
            earning.payout_id = None
        await self.session.flush()
        return earnings

    async def _split_without_commit(self, earning: Earning, keep: Decimal) -> Earning:
        """Shrink `earning` to `keep` and add the remainder as a new available earning"""
        remainder = earning.net_amount - keep
        metadata = dict(earning.metadata_ or {})
        metadata["split_from"] = str(earning.earning_id)

        remainder_earning = Earning(
            user_id=earning.user_id,
            order_id=earning.order_id,
            currency=earning.currency,
            amount=remainder,
            fee=Decimal("0"),
            net_amount=remainder,
            type=earning.type,
            status=EarningStatus.AVAILABLE,
            metadata_=metadata,
            created_at=earning.created_at,  # Keeps its place in the FIFO queue
        )
        self.session.add(remainder_earning)

        earning.amount = earning.amount - remainder
        earning.net_amount = keep
        return remainder_earning
