"""
Repository for payout methods.
"""

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import and_, select

from database.models import PayoutMethod
from enums import PayoutMethodType
from errors import NotFound, PermissionDenied


class PayoutMethodRepository:
    """
    Repository for payout methods.
    Note: Methods do NOT commit - caller must manage transaction boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_method_without_commit(
        self,
        user_id: uuid.UUID,
        type: PayoutMethodType,
        details: Dict[str, Any],
        currency: str,
        is_default: bool = False,
    ) -> PayoutMethod:
        """
        Create a payout method. The first method of a user is always the default.
        Must be called within a transaction context - does NOT commit.
        """
        existing = await self.get_user_methods(user_id, lock=True)
        make_default = is_default or not existing
        if make_default:
            await self._unset_defaults_without_commit(user_id)

        method = PayoutMethod(
            user_id=user_id,
            type=type,
            details=details,
            currency=currency,
            is_default=make_default,
        )
        self.session.add(method)
        await self.session.flush()
        return method

    async def get_method(self, payout_method_id: uuid.UUID) -> PayoutMethod:
        """Get method - raises NotFound"""
        result = await self.session.execute(
            select(PayoutMethod).where(PayoutMethod.payout_method_id == payout_method_id)
        )
        method = result.scalar_one_or_none()
        if method is None:
            raise NotFound("PayoutMethod", payout_method_id)
        return method

    async def get_user_method(
        self, user_id: uuid.UUID, payout_method_id: uuid.UUID
    ) -> PayoutMethod:
        """Get method owned by user - raises NotFound / PermissionDenied"""
        method = await self.get_method(payout_method_id)
        if method.user_id != user_id:
            raise PermissionDenied(
                f"Payout method {payout_method_id} does not belong to user {user_id}"
            )
        return method

    async def get_user_methods(self, user_id: uuid.UUID, lock: bool = False) -> List[PayoutMethod]:
        """All methods of a user, oldest first"""
        stmt = (
            select(PayoutMethod)
            .where(PayoutMethod.user_id == user_id)
            .order_by(PayoutMethod.created_at, PayoutMethod.payout_method_id)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_default_method(self, user_id: uuid.UUID) -> Optional[PayoutMethod]:
        result = await self.session.execute(
            select(PayoutMethod).where(
                and_(PayoutMethod.user_id == user_id, PayoutMethod.is_default)
            )
        )
        return result.scalar_one_or_none()

    async def set_default_without_commit(self, method: PayoutMethod) -> PayoutMethod:
        """Unset-then-set so the partial unique index never sees two defaults"""
        await self.get_user_methods(method.user_id, lock=True)
        await self._unset_defaults_without_commit(method.user_id, exclude=method.payout_method_id)
        method.is_default = True
        await self.session.flush()
        return method

    async def update_details_without_commit(
        self, method: PayoutMethod, details: Dict[str, Any], currency: Optional[str] = None
    ) -> PayoutMethod:
        method.details = details
        if currency is not None:
            method.currency = currency
        await self.session.flush()
        return method

    async def delete_method_without_commit(self, method: PayoutMethod) -> Optional[PayoutMethod]:
        """
        Delete a method. When it was the default, the oldest remaining method
        is promoted. Returns the promoted method, if any.
        """
        was_default = method.is_default
        user_id = method.user_id
        await self.session.delete(method)
        await self.session.flush()

        if not was_default:
            return None
        remaining = await self.get_user_methods(user_id, lock=True)
        if not remaining:
            return None
        remaining[0].is_default = True
        await self.session.flush()
        return remaining[0]

    async def _unset_defaults_without_commit(
        self, user_id: uuid.UUID, exclude: Optional[uuid.UUID] = None
    ) -> None:
        stmt = (
            update(PayoutMethod)
            .where(PayoutMethod.user_id == user_id)
            .where(PayoutMethod.is_default)
            .values(is_default=False)
        )
        if exclude is not None:
            stmt = stmt.where(PayoutMethod.payout_method_id != exclude)
        # Flushed immediately so the UPDATE lands before the new default is written
        await self.session.execute(stmt.execution_options(synchronize_session="fetch"))
