"""
Wallet helpers: user accounts, balances and ledger history.
"""
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from database import get_db_transaction
from database.models import Transaction, UserAccount, WalletAccount
from database.repositories import UserRepository, WalletRepository
from enums import TransactionType
from errors import ValidationError
from models.core import Currency


async def create_user(currency: str, user_id: Optional[UUID] = None) -> UserAccount:
    """Create a user settling into `currency`"""
    if not Currency.is_valid(currency):
        raise ValidationError(f"Unsupported currency: {currency}", currency=currency)
    async with get_db_transaction() as session:
        return await UserRepository(session).create_user_without_commit(currency, user_id)


async def deposit(
    user_id: UUID, amount: Decimal, currency: str, reference: str, description: str = "Deposit"
) -> Transaction:
    """Credit a wallet directly (admin top-up, seeding)"""
    async with get_db_transaction() as session:
        await UserRepository(session).get_user(user_id)
        return await WalletRepository(session).credit_without_commit(
            user_id,
            amount,
            currency,
            reference=reference,
            type=TransactionType.DEPOSIT,
            description=description,
        )


async def get_balance(user_id: UUID, currency: str) -> Decimal:
    async with get_db_transaction() as session:
        return await WalletRepository(session).check_balance(user_id, currency)


async def get_wallets(user_id: UUID) -> List[WalletAccount]:
    async with get_db_transaction() as session:
        return await WalletRepository(session).get_user_wallets(user_id)


async def get_transactions(user_id: UUID, limit: int = 50) -> List[Transaction]:
    async with get_db_transaction() as session:
        return await WalletRepository(session).get_user_transactions(user_id, limit)
