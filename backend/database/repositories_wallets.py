"""
Repository for per-currency wallets and their ledger.

This is the wallet service the settlement engine talks to. Every balance
change is a conditional UPDATE on a locked wallet row plus one append-only
Transaction, so it enlists in the caller's database transaction.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import and_, desc, select

from database.models import Transaction, WalletAccount
from enums import TransactionStatus, TransactionType
from errors import InsufficientBalance, ValidationError
from models.core import quantize


class WalletRepository:
    """
    Repository for wallets and ledger transactions.
    Note: Methods do NOT commit - caller must manage transaction boundaries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_wallet_or_none(
        self, user_id: uuid.UUID, currency: str, lock: bool = False
    ) -> Optional[WalletAccount]:
        """Get wallet - returns None if the user never held this currency"""
        stmt = select(WalletAccount).where(
            and_(WalletAccount.user_id == user_id, WalletAccount.currency == currency)
        )
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_wallet_without_commit(
        self, user_id: uuid.UUID, currency: str
    ) -> WalletAccount:
        """Get wallet with lock, creating an empty one if needed"""
        wallet = await self.get_wallet_or_none(user_id, currency, lock=True)
        if wallet is None:
            wallet = WalletAccount(user_id=user_id, currency=currency, balance=Decimal("0"))
            self.session.add(wallet)
            await self.session.flush()
        return wallet

    async def get_user_wallets(self, user_id: uuid.UUID) -> List[WalletAccount]:
        result = await self.session.execute(
            select(WalletAccount)
            .where(WalletAccount.user_id == user_id)
            .order_by(WalletAccount.currency)
        )
        return list(result.scalars().all())

    async def check_balance(self, user_id: uuid.UUID, currency: str) -> Decimal:
        """Current balance, zero when no wallet exists"""
        wallet = await self.get_wallet_or_none(user_id, currency)
        return wallet.balance if wallet else Decimal("0")

    async def debit_without_commit(
        self,
        user_id: uuid.UUID,
        amount: Decimal,
        currency: str,
        *,
        reference: str,
        type: TransactionType,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
        counterparty_id: Optional[uuid.UUID] = None,
        listing_id: Optional[uuid.UUID] = None,
        platform_fee: Decimal = Decimal("0"),
        platform_fee_percentage: Decimal = Decimal("0"),
    ) -> Transaction:
        """
        Debit a wallet, re-checking the balance on the locked row.
        Raises InsufficientBalance - nothing is written in that case.
        """
        amount = self._positive(amount)
        wallet = await self.get_wallet_or_none(user_id, currency, lock=True)
        available = wallet.balance if wallet else Decimal("0")
        if wallet is None or available < amount:
            raise InsufficientBalance(required=amount, available=available, currency=currency)

        # Guarded decrement: never goes negative even without row locks (SQLite)
        result = await self.session.execute(
            update(WalletAccount)
            .where(WalletAccount.wallet_id == wallet.wallet_id)
            .where(WalletAccount.balance >= amount)
            .values(balance=WalletAccount.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.session.refresh(wallet)
            raise InsufficientBalance(required=amount, available=wallet.balance, currency=currency)
        await self.session.refresh(wallet)

        return await self._record_without_commit(
            wallet,
            amount=-amount,
            net_amount=-(amount - platform_fee),
            reference=reference,
            type=type,
            description=description,
            metadata=metadata,
            counterparty_id=counterparty_id,
            listing_id=listing_id,
            platform_fee=platform_fee,
            platform_fee_percentage=platform_fee_percentage,
        )

    async def credit_without_commit(
        self,
        user_id: uuid.UUID,
        amount: Decimal,
        currency: str,
        *,
        reference: str,
        type: TransactionType,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
        counterparty_id: Optional[uuid.UUID] = None,
        provider_reference: Optional[str] = None,
    ) -> Transaction:
        """Credit a wallet, creating it on first use"""
        amount = self._positive(amount)
        wallet = await self.get_or_create_wallet_without_commit(user_id, currency)

        await self.session.execute(
            update(WalletAccount)
            .where(WalletAccount.wallet_id == wallet.wallet_id)
            .values(balance=WalletAccount.balance + amount)
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(wallet)

        return await self._record_without_commit(
            wallet,
            amount=amount,
            net_amount=amount,
            reference=reference,
            type=type,
            description=description,
            metadata=metadata,
            counterparty_id=counterparty_id,
            provider_reference=provider_reference,
        )

    async def get_transaction_by_reference(self, reference: str) -> Optional[Transaction]:
        result = await self.session.execute(
            select(Transaction).where(Transaction.reference == reference)
        )
        return result.scalar_one_or_none()

    async def get_user_transactions(
        self, user_id: uuid.UUID, limit: int = 50
    ) -> List[Transaction]:
        """Most recent first"""
        result = await self.session.execute(
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(desc(Transaction.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def _record_without_commit(
        self,
        wallet: WalletAccount,
        *,
        amount: Decimal,
        net_amount: Decimal,
        reference: str,
        type: TransactionType,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
        counterparty_id: Optional[uuid.UUID] = None,
        listing_id: Optional[uuid.UUID] = None,
        provider_reference: Optional[str] = None,
        platform_fee: Decimal = Decimal("0"),
        platform_fee_percentage: Decimal = Decimal("0"),
    ) -> Transaction:
        now = datetime.now(timezone.utc)
        transaction = Transaction(
            user_id=wallet.user_id,
            wallet_id=wallet.wallet_id,
            counterparty_id=counterparty_id,
            listing_id=listing_id,
            amount=quantize(amount),
            net_amount=quantize(net_amount),
            platform_fee=quantize(platform_fee),
            platform_fee_percentage=platform_fee_percentage,
            total_fees=quantize(platform_fee),
            currency=wallet.currency,
            type=type,
            status=TransactionStatus.COMPLETED,
            reference=reference,
            provider_reference=provider_reference,
            description=description,
            metadata_=metadata or {},
            completed_at=now,
        )
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    @staticmethod
    def _positive(amount: Decimal) -> Decimal:
        amount = quantize(amount)
        if amount <= 0:
            raise ValidationError(f"Amount must be positive, got {amount}", amount=amount)
        return amount
