"""
Payment gateway callbacks. Deposits are keyed by the gateway reference, so a
callback delivered twice credits the wallet once.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError

from database import get_db_transaction
from database.models import Transaction
from database.repositories import UserRepository, WalletRepository
from enums import TransactionType
from errors import ReferenceConflict, ValidationError
from models.core import quantize
from models.schemas import DepositCallback

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"success", "successful", "completed"}


def _replayed(existing: Optional[Transaction], callback: DepositCallback) -> Optional[Transaction]:
    """
    The earlier credit for this callback, if any.
    Raises ReferenceConflict when the reference belongs to some other entry.
    """
    if existing is None:
        return None
    if (
        existing.type != TransactionType.DEPOSIT
        or existing.user_id != callback.user_id
        or existing.currency != callback.currency
        or existing.amount != quantize(callback.amount)
    ):
        logger.warning(
            f"{callback.provider} callback {callback.reference} for {callback.user_id} "
            f"collides with transaction {existing.transaction_id}"
        )
        raise ReferenceConflict(callback.reference)
    return existing


async def apply_deposit_callback(callback: DepositCallback) -> Tuple[Transaction, bool]:
    """
    Credit a successful deposit.

    Returns:
        (transaction, already_applied). A replayed callback returns the
        original transaction and credits nothing.

    Raises:
        ValidationError: payment not successful
        ReferenceConflict: the reference is taken by a different transaction
        NotFound: unknown user
    """
    if callback.status not in SUCCESS_STATUSES:
        logger.info(f"Ignoring {callback.provider} callback {callback.reference}: {callback.status}")
        raise ValidationError(
            f"Deposit {callback.reference} was not successful",
            reference=callback.reference,
            status=callback.status,
        )

    async with get_db_transaction() as session:
        existing = await WalletRepository(session).get_transaction_by_reference(callback.reference)
    if _replayed(existing, callback) is not None:
        logger.info(f"Deposit {callback.reference} already applied")
        return existing, True

    try:
        async with get_db_transaction() as session:
            await UserRepository(session).get_user(callback.user_id)
            transaction = await WalletRepository(session).credit_without_commit(
                callback.user_id,
                callback.amount,
                callback.currency,
                reference=callback.reference,
                type=TransactionType.DEPOSIT,
                description=f"Deposit via {callback.provider}",
                provider_reference=callback.provider_reference,
                metadata={"provider": callback.provider},
            )
    except IntegrityError:
        # A concurrent delivery of the same callback won the insert
        async with get_db_transaction() as session:
            existing = await WalletRepository(session).get_transaction_by_reference(
                callback.reference
            )
        if _replayed(existing, callback) is None:
            raise
        logger.warning(f"Deposit {callback.reference} raced a duplicate callback, already applied")
        return existing, True

    logger.info(
        f"Deposit {callback.reference} applied: {callback.amount} {callback.currency} "
        f"to {callback.user_id}"
    )
    return transaction, False
