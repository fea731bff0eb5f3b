"""
Repository for user accounts.
"""

import uuid
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import desc, select

from database.models import UserAccount
from errors import NotFound


class UserRepository:
    """
    Repository for user accounts.
    Note: Methods do NOT commit - caller must manage transaction boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_user_without_commit(
        self, currency: str, user_id: Optional[uuid.UUID] = None
    ) -> UserAccount:
        """
        Create a new user account settling into `currency`.
        Must be called within a transaction context - does NOT commit.
        """
        user = UserAccount(user_id=user_id or uuid.uuid4(), currency=currency, is_active=True)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_user(self, user_id: uuid.UUID) -> UserAccount:
        """Get user - raises NotFound"""
        user = await self.get_user_or_none(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    async def get_user_or_none(self, user_id: uuid.UUID) -> Optional[UserAccount]:
        """Get user - returns None if not found"""
        result = await self.session.execute(
            select(UserAccount).where(UserAccount.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_all_users(self) -> List[UserAccount]:
        """Get all active users"""
        result = await self.session.execute(
            select(UserAccount)
            .where(UserAccount.is_active)
            .order_by(desc(UserAccount.created_at))
        )
        return list(result.scalars().all())

    async def update_currency_without_commit(self, user_id: uuid.UUID, currency: str) -> UserAccount:
        """Change the profile (settlement) currency"""
        user = await self.get_user(user_id)
        user.currency = currency
        await self.session.flush()
        return user
