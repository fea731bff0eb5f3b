"""
Earnings balances, payouts and payout methods.

Payouts are funded from available earnings. Requesting a payout claims
earnings oldest-first and moves them to processing, so the claimed amount
drops out of the available balance immediately. Processing hands the payout
to a PayoutRail and only marks it completed once the rail accepted it.
"""
import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

from config import PAYOUT_RAIL_TIMEOUT_SECONDS
from database import get_db_transaction
from database.models import Earning, Payout, PayoutMethod
from database.repositories import (
    EarningRepository,
    PayoutMethodRepository,
    PayoutRepository,
    UserRepository,
)
from database.retries import run_with_retries
from enums import EarningStatus, PayoutMethodType, PayoutStatus
from errors import (
    InvalidStateTransition,
    PermissionDenied,
    SettlementFailed,
    ValidationError,
)
from models.core import Currency, quantize
from models.responses import BalanceResponse
from models.schemas.payout_methods import dump_payout_details, parse_payout_details

logger = logging.getLogger(__name__)


class PayoutRail(Protocol):
    """External disbursement collaborator"""

    async def disburse(self, payout: Payout, idempotency_key: str) -> None:
        """
        Send funds; raise on failure. A repeated call with the same
        idempotency_key must not pay twice.
        """
        ...


class LoggingPayoutRail:
    """Default rail: records the disbursement in the log and accepts it"""

    async def disburse(self, payout: Payout, idempotency_key: str) -> None:
        logger.info(
            f"Disbursing payout {idempotency_key}: {payout.amount} {payout.currency} "
            f"to method {payout.payout_method_id or payout.linked_account}"
        )


payout_rail: PayoutRail = LoggingPayoutRail()


async def disburse_with_timeout(rail: PayoutRail, payout: Payout) -> None:
    """Call the rail keyed by the payout reference; failure or timeout surfaces as SettlementFailed"""
    try:
        await asyncio.wait_for(
            rail.disburse(payout, idempotency_key=payout.reference),
            timeout=PAYOUT_RAIL_TIMEOUT_SECONDS,
        )
    except Exception as e:
        logger.error(f"Payout rail rejected {payout.reference}: {e}")
        raise SettlementFailed("Payout could not be disbursed. Please try again later.") from e


async def disburse_payout(
    payout_id: UUID, rail: PayoutRail, owner_id: Optional[UUID] = None
) -> Payout:
    """
    Drive a pending payout through the rail.

    1. pending -> processing, committed on its own
    2. rail call, outside any transaction and outside the retry loop
    3. processing -> completed with claimed earnings paid

    A rail failure hands the payout back to pending. When step 3 cannot
    commit the payout stays processing; the rail is never called twice.
    """

    async def start() -> Payout:
        async with get_db_transaction() as session:
            payout_repo = PayoutRepository(session)
            payout = await payout_repo.get_payout(payout_id, lock=True)
            if owner_id is not None and payout.user_id != owner_id:
                raise PermissionDenied(f"Payout {payout_id} does not belong to user {owner_id}")
            if payout.status != PayoutStatus.PENDING:
                raise InvalidStateTransition(
                    "payout", payout.status.value, PayoutStatus.PROCESSING.value
                )
            return await payout_repo.transition_without_commit(payout, PayoutStatus.PROCESSING)

    async def hand_back() -> Payout:
        async with get_db_transaction() as session:
            payout_repo = PayoutRepository(session)
            payout = await payout_repo.get_payout(payout_id, lock=True)
            return await payout_repo.transition_without_commit(payout, PayoutStatus.PENDING)

    async def complete() -> Payout:
        async with get_db_transaction() as session:
            payout_repo = PayoutRepository(session)
            payout = await payout_repo.get_payout(payout_id, lock=True)
            await EarningRepository(session).mark_paid_without_commit(payout.payout_id)
            return await payout_repo.transition_without_commit(payout, PayoutStatus.COMPLETED)

    payout = await run_with_retries(start, label=f"start payout {payout_id}")

    try:
        await disburse_with_timeout(rail, payout)
    except SettlementFailed:
        await run_with_retries(hand_back, label=f"return payout {payout_id} to pending")
        raise

    try:
        payout = await run_with_retries(complete, label=f"complete payout {payout_id}")
    except SettlementFailed:
        logger.error(f"Payout {payout.reference} was disbursed but left processing")
        raise

    logger.info(f"Payout {payout.reference} completed")
    return payout

# Earnings


async def available_balance(user_id: UUID, currency: str) -> Decimal:
    """Sum of available earnings in one currency"""
    async with get_db_transaction() as session:
        return await EarningRepository(session).get_available_balance(user_id, currency)


async def balances_by_currency(user_id: UUID) -> List[BalanceResponse]:
    """Available, processing and paid earnings per currency"""
    async with get_db_transaction() as session:
        totals = await EarningRepository(session).get_totals_by_currency(user_id)

    return [
        BalanceResponse(
            currency=currency,
            available=by_status[EarningStatus.AVAILABLE.value],
            processing=by_status[EarningStatus.PROCESSING.value],
            paid=by_status[EarningStatus.PAID.value],
        )
        for currency, by_status in sorted(totals.items())
    ]


async def list_earnings(
    user_id: UUID, status: Optional[EarningStatus] = None, limit: int = 50
) -> List[Earning]:
    async with get_db_transaction() as session:
        return await EarningRepository(session).get_user_earnings(user_id, status, limit)


# Payouts


async def request_payout(
    user_id: UUID, amount: Decimal, currency: str, payout_method_id: UUID
) -> Payout:
    """
    Create a pending payout funded by the user's available earnings.

    Raises:
        ValidationError: non-positive amount or method currency differs
        NotFound / PermissionDenied: unknown method or not the user's
        InsufficientBalance: available earnings below `amount`
    """
    amount = quantize(amount)
    if amount <= 0:
        raise ValidationError(f"Payout amount must be positive, got {amount}", amount=amount)

    async def operation() -> Payout:
        async with get_db_transaction() as session:
            method = await PayoutMethodRepository(session).get_user_method(user_id, payout_method_id)
            if method.currency != currency:
                raise ValidationError(
                    f"Payout method pays out in {method.currency}, not {currency}",
                    method_currency=method.currency,
                    currency=currency,
                )

            payout_repo = PayoutRepository(session)
            payout = await payout_repo.create_payout_without_commit(
                user_id=user_id,
                amount=amount,
                currency=currency,
                payout_method_id=method.payout_method_id,
                linked_account=method.get_details().masked(),
            )
            # Raises InsufficientBalance and rolls back the payout row
            await EarningRepository(session).claim_for_payout_without_commit(
                user_id, currency, amount, payout.payout_id
            )
            return payout

    payout = await run_with_retries(operation, label=f"payout request for {user_id}")
    logger.info(f"Payout {payout.reference} requested: {amount} {currency}")
    return payout


async def process_payout(payout_id: UUID, rail: Optional[PayoutRail] = None) -> Payout:
    """
    Disburse a pending payout and mark it completed with its earnings paid.
    A rail failure leaves the payout pending for a later retry.
    """
    return await disburse_payout(payout_id, rail or payout_rail)


async def fail_payout(payout_id: UUID) -> Payout:
    """pending or processing -> failed; claimed earnings become available again"""

    async def operation() -> Payout:
        async with get_db_transaction() as session:
            payout_repo = PayoutRepository(session)
            payout = await payout_repo.get_payout(payout_id, lock=True)
            payout = await payout_repo.transition_without_commit(payout, PayoutStatus.FAILED)
            await EarningRepository(session).release_claim_without_commit(payout.payout_id)
            return payout

    payout = await run_with_retries(operation, label=f"fail payout {payout_id}")
    logger.warning(f"Payout {payout.reference} failed, earnings released")
    return payout


async def get_payout(user_id: UUID, payout_id: UUID) -> Payout:
    async with get_db_transaction() as session:
        payout = await PayoutRepository(session).get_payout(payout_id)
    if payout.user_id != user_id:
        raise PermissionDenied(f"Payout {payout_id} does not belong to user {user_id}")
    return payout


async def list_payouts(user_id: UUID, limit: int = 20) -> List[Payout]:
    async with get_db_transaction() as session:
        return await PayoutRepository(session).get_user_payouts(user_id, limit)


# Payout methods


async def add_payout_method(
    user_id: UUID,
    type: PayoutMethodType,
    details: Dict[str, Any],
    currency: str,
    is_default: bool = False,
) -> PayoutMethod:
    """Validate `details` against `type` and store the method"""
    if not Currency.is_valid(currency):
        raise ValidationError(f"Unsupported currency: {currency}", currency=currency)
    validated = parse_payout_details(type, details)

    async with get_db_transaction() as session:
        await UserRepository(session).get_user(user_id)
        method = await PayoutMethodRepository(session).create_method_without_commit(
            user_id=user_id,
            type=PayoutMethodType(type),
            details=dump_payout_details(validated),
            currency=currency,
            is_default=is_default,
        )

    logger.info(f"Payout method {method.payout_method_id} ({method.type.value}) added for {user_id}")
    return method


async def update_payout_method(
    user_id: UUID,
    payout_method_id: UUID,
    details: Dict[str, Any],
    currency: Optional[str] = None,
) -> PayoutMethod:
    if currency is not None and not Currency.is_valid(currency):
        raise ValidationError(f"Unsupported currency: {currency}", currency=currency)

    async with get_db_transaction() as session:
        repo = PayoutMethodRepository(session)
        method = await repo.get_user_method(user_id, payout_method_id)
        validated = parse_payout_details(method.type, details)
        return await repo.update_details_without_commit(
            method, dump_payout_details(validated), currency
        )


async def set_default_payout_method(user_id: UUID, payout_method_id: UUID) -> PayoutMethod:
    async with get_db_transaction() as session:
        repo = PayoutMethodRepository(session)
        method = await repo.get_user_method(user_id, payout_method_id)
        return await repo.set_default_without_commit(method)


async def remove_payout_method(user_id: UUID, payout_method_id: UUID) -> Optional[PayoutMethod]:
    """Delete a method; returns the method promoted to default, if any"""
    async with get_db_transaction() as session:
        repo = PayoutMethodRepository(session)
        method = await repo.get_user_method(user_id, payout_method_id)
        promoted = await repo.delete_method_without_commit(method)

    logger.info(f"Payout method {payout_method_id} removed for {user_id}")
    return promoted


async def list_payout_methods(user_id: UUID) -> List[PayoutMethod]:
    async with get_db_transaction() as session:
        return await PayoutMethodRepository(session).get_user_methods(user_id)
