"""
Goods orders paid into escrow.

The buyer pays price plus buyer fee up front; the price is held in escrow
until the seller either completes the order (escrow released to the seller
minus commission) or refunds it (buyer gets everything back). A completed
order can be paid out once, less the payout fee.
"""
import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import (
    DEFAULT_CROSS_BORDER_RATE,
    GOODS_BUYER_FEE_RATE,
    GOODS_LISTING_FEE_RATE,
    GOODS_SELLER_COMMISSION_RATE,
    PAYOUT_FEE_RATE,
)
from database import get_db_transaction
from database.models import GoodsListing, GoodsOrder, Payout
from database.repositories import GoodsRepository, PayoutRepository, UserRepository, WalletRepository
from database.retries import run_with_retries
from enums import EscrowStatus, GoodsOrderStatus, TransactionType
from errors import ConcurrencyConflict, InvalidStateTransition, PermissionDenied, ValidationError
from models.core import Currency, quantize
from models.responses import EscrowResponse, FeeResponse, GoodsOrderDetail, GoodsOrderResponse
from services.payouts import PayoutRail, disburse_payout, payout_rail

logger = logging.getLogger(__name__)


async def create_goods_listing(
    seller_id: UUID, title: str, price: Decimal, quantity: int, currency: str
) -> GoodsListing:
    price = quantize(price)
    if price <= 0:
        raise ValidationError("Price must be positive", price=price)
    if quantity <= 0:
        raise ValidationError("Quantity must be positive", quantity=quantity)
    if not Currency.is_valid(currency):
        raise ValidationError(f"Unsupported currency: {currency}", currency=currency)

    async with get_db_transaction() as session:
        await UserRepository(session).get_user(seller_id)
        return await GoodsRepository(session).create_listing_without_commit(
            seller_id, title, price, quantity, currency
        )


async def list_goods_listings() -> List[GoodsListing]:
    async with get_db_transaction() as session:
        return await GoodsRepository(session).get_active_listings()


async def place_order(buyer_id: UUID, goods_listing_id: UUID) -> GoodsOrder:
    """
    Buy one unit. Debits price + buyer fee from the buyer's wallet, holds the
    price in escrow and itemizes the fees.
    """

    async def operation() -> GoodsOrder:
        async with get_db_transaction() as session:
            goods_repo = GoodsRepository(session)
            listing = await goods_repo.get_listing(goods_listing_id, lock=True)
            if listing.seller_id == buyer_id:
                raise PermissionDenied("Sellers cannot buy their own listing")

            # Raises ListingUnavailable when inactive or out of stock
            await goods_repo.take_unit_without_commit(listing.goods_listing_id)

            buyer_fee = quantize(listing.price * GOODS_BUYER_FEE_RATE)
            order = await goods_repo.create_order_without_commit(buyer_id, listing, buyer_fee)

            await WalletRepository(session).debit_without_commit(
                buyer_id,
                order.total_amount,
                order.currency,
                reference=order.reference,
                type=TransactionType.ESCROW_HOLD,
                description=f"Escrow hold for {listing.title}",
                counterparty_id=listing.seller_id,
                platform_fee=buyer_fee,
                metadata={"goods_order_id": str(order.goods_order_id)},
            )
            await goods_repo.hold_escrow_without_commit(order)
            await goods_repo.create_fee_without_commit(
                order.goods_order_id,
                listing_fee=quantize(order.price * GOODS_LISTING_FEE_RATE),
                seller_commission=quantize(order.price * GOODS_SELLER_COMMISSION_RATE),
                buyer_fee=buyer_fee,
            )
            return order

    order = await run_with_retries(operation, label=f"goods order on {goods_listing_id}")
    logger.info(f"Goods order {order.reference} placed: {order.total_amount} {order.currency} held")
    return order


async def complete_order(seller_id: UUID, goods_order_id: UUID) -> GoodsOrder:
    """Release escrow to the seller, less the seller commission"""

    async def operation():
        async with get_db_transaction() as session:
            goods_repo = GoodsRepository(session)
            order = await _seller_order(goods_repo, seller_id, goods_order_id)

            escrow = await goods_repo.get_escrow(order.goods_order_id, lock=True)
            await goods_repo.close_escrow_without_commit(escrow, EscrowStatus.RELEASED)
            fee = await goods_repo.get_fee(order.goods_order_id)

            seller_amount = escrow.amount - fee.seller_commission
            await WalletRepository(session).credit_without_commit(
                seller_id,
                seller_amount,
                order.currency,
                reference=f"{order.reference}-RELEASE",
                type=TransactionType.ESCROW_RELEASE,
                description="Escrow released",
                counterparty_id=order.buyer_id,
                metadata={
                    "goods_order_id": str(order.goods_order_id),
                    "seller_commission": str(fee.seller_commission),
                },
            )
            order = await goods_repo.set_order_status_without_commit(
                order, GoodsOrderStatus.COMPLETED
            )
            return order, seller_amount

    order, seller_amount = await run_with_retries(
        operation, label=f"complete goods order {goods_order_id}"
    )
    logger.info(f"Goods order {order.reference} completed, {seller_amount} released to seller")
    return order


async def refund_order(seller_id: UUID, goods_order_id: UUID) -> GoodsOrder:
    """Return price + buyer fee to the buyer and restock the unit"""

    async def operation() -> GoodsOrder:
        async with get_db_transaction() as session:
            goods_repo = GoodsRepository(session)
            order = await _seller_order(goods_repo, seller_id, goods_order_id)

            escrow = await goods_repo.get_escrow(order.goods_order_id, lock=True)
            await goods_repo.close_escrow_without_commit(escrow, EscrowStatus.REFUNDED)

            await WalletRepository(session).credit_without_commit(
                order.buyer_id,
                order.total_amount,
                order.currency,
                reference=f"{order.reference}-REFUND",
                type=TransactionType.REFUND,
                description="Escrow refunded",
                counterparty_id=seller_id,
                metadata={"goods_order_id": str(order.goods_order_id)},
            )
            await goods_repo.restore_unit_without_commit(order.goods_listing_id)
            return await goods_repo.set_order_status_without_commit(
                order, GoodsOrderStatus.REFUNDED
            )

    order = await run_with_retries(operation, label=f"refund goods order {goods_order_id}")
    logger.info(f"Goods order {order.reference} refunded")
    return order


async def request_order_payout(
    user_id: UUID,
    goods_order_id: UUID,
    linked_account: str,
    is_cross_border: bool = False,
    converted_currency: Optional[str] = None,
    conversion_rate: Optional[Decimal] = None,
) -> Payout:
    """
    Pay out a completed order. The payout fee is debited from the seller's
    wallet now; the payout amount is the escrow amount less that fee, in the
    order currency. A cross-border payout also carries that amount converted
    into `converted_currency`, which is then required.
    """
    if is_cross_border and not (converted_currency and Currency.is_valid(converted_currency)):
        raise ValidationError(
            "Cross-border payouts need a supported converted_currency",
            converted_currency=converted_currency,
        )

    async def operation() -> Payout:
        try:
            async with get_db_transaction() as session:
                return await _create_order_payout(
                    session,
                    user_id,
                    goods_order_id,
                    linked_account,
                    is_cross_border,
                    converted_currency,
                    conversion_rate,
                )
        except IntegrityError as e:
            # Lost the unique goods_order_id insert to a concurrent request;
            # the retry sees that payout and rejects this one
            raise ConcurrencyConflict(f"Payout for order {goods_order_id} raced") from e

    payout = await run_with_retries(operation, label=f"goods order payout {goods_order_id}")
    logger.info(f"Payout {payout.reference} requested for goods order {goods_order_id}")
    return payout


async def _create_order_payout(
    session: AsyncSession,
    user_id: UUID,
    goods_order_id: UUID,
    linked_account: str,
    is_cross_border: bool,
    converted_currency: Optional[str],
    conversion_rate: Optional[Decimal],
) -> Payout:
    goods_repo = GoodsRepository(session)
    payout_repo = PayoutRepository(session)
    order = await _seller_order(goods_repo, user_id, goods_order_id)

    escrow = await goods_repo.get_escrow(order.goods_order_id)
    if escrow.status != EscrowStatus.RELEASED:
        raise InvalidStateTransition("escrow", escrow.status.value, "payout")
    if await payout_repo.get_order_payout_or_none(order.goods_order_id) is not None:
        raise ValidationError(
            f"Order {order.reference} already has a payout",
            goods_order_id=str(order.goods_order_id),
        )

    payout_fee = quantize(escrow.amount * PAYOUT_FEE_RATE)
    amount = escrow.amount - payout_fee
    rate = converted_amount = None
    if is_cross_border:
        rate = quantize(conversion_rate or DEFAULT_CROSS_BORDER_RATE)
        converted_amount = quantize(amount * rate)

    payout = await payout_repo.create_payout_without_commit(
        user_id=user_id,
        amount=amount,
        currency=order.currency,
        goods_order_id=order.goods_order_id,
        payout_fee=payout_fee,
        is_cross_border=is_cross_border,
        conversion_rate=rate,
        converted_amount=converted_amount,
        converted_currency=converted_currency if is_cross_border else None,
        linked_account=linked_account,
    )
    await WalletRepository(session).debit_without_commit(
        user_id,
        payout_fee,
        order.currency,
        reference=f"{payout.reference}-FEE",
        type=TransactionType.PAYOUT_FEE,
        description="Payout processing fee",
        metadata={"payout_id": str(payout.payout_id)},
    )
    fee = await goods_repo.get_fee(order.goods_order_id, lock=True)
    await goods_repo.set_payout_fee_without_commit(fee, payout_fee)
    return payout


async def process_order_payout(
    user_id: UUID, payout_id: UUID, rail: Optional[PayoutRail] = None
) -> Payout:
    """Disburse a pending order payout; owner only"""
    return await disburse_payout(payout_id, rail or payout_rail, owner_id=user_id)


async def get_order_detail(user_id: UUID, goods_order_id: UUID) -> GoodsOrderDetail:
    """Order with escrow and fees; buyer or seller only"""
    async with get_db_transaction() as session:
        goods_repo = GoodsRepository(session)
        order = await goods_repo.get_order(goods_order_id)
        if user_id not in (order.buyer_id, order.seller_id):
            raise PermissionDenied(f"Order {goods_order_id} is not visible to {user_id}")
        escrow = await goods_repo.get_escrow(goods_order_id)
        fee = await goods_repo.get_fee(goods_order_id)

        return GoodsOrderDetail(
            order=GoodsOrderResponse.model_validate(order),
            escrow=EscrowResponse.model_validate(escrow),
            fee=FeeResponse.model_validate(fee),
        )


async def list_user_orders(user_id: UUID) -> List[GoodsOrder]:
    async with get_db_transaction() as session:
        return await GoodsRepository(session).get_user_orders(user_id)


async def _seller_order(goods_repo: GoodsRepository, seller_id: UUID, goods_order_id: UUID) -> GoodsOrder:
    order = await goods_repo.get_order(goods_order_id, lock=True)
    if order.seller_id != seller_id:
        raise PermissionDenied(f"Order {goods_order_id} is not sold by {seller_id}")
    return order
