import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from config import SETTLEMENT_MAX_RETRIES, SETTLEMENT_RETRY_BACKOFF_SECONDS
from database import async_session, transaction_scope
from database.models import Listing, Order
from database.repositories import (
    EarningRepository,
    ListingRepository,
    OrderRepository,
    UserRepository,
    WalletRepository,
)
from database.retries import run_with_retries
from enums import EarningType, OrderStatus, TransactionType
from errors import (
    AccountCurrencyMismatch,
    AmountOutOfRange,
    CurrencyMismatch,
    InsufficientBalance,
    ListingUnavailable,
    SettlementError,
    ValidationError,
)
from models.core import percent_of, quantize
from models.responses import QuoteResponse

logger = logging.getLogger(__name__)


def check_amount_bounds(listing: Listing, amount: Decimal) -> None:
    """Raise AmountOutOfRange unless min_amount <= amount <= min(max_amount, inventory)"""
    if amount < listing.min_amount:
        raise AmountOutOfRange("minimum", amount, listing.min_amount, listing.from_currency)
    max_amount = listing.max_amount
    if max_amount is not None and amount > max_amount and max_amount <= listing.amount:
        raise AmountOutOfRange("maximum", amount, max_amount, listing.from_currency)
    if amount > listing.amount:
        raise AmountOutOfRange("available", amount, listing.amount, listing.from_currency)


def compute_settlement(amount: Decimal, exchange_rate: Decimal, fee_percentage: Decimal):
    """(exchanged, platform_fee, net) in the target currency"""
    exchanged = quantize(amount * exchange_rate)
    platform_fee = percent_of(exchanged, fee_percentage)
    return exchanged, platform_fee, exchanged - platform_fee


class SettlementEngine:
    """
    Settles buyer orders against exchange listings.

    Validation runs first on a read-only view and never writes. The
    settlement itself is one database transaction: the listing row is
    locked and re-validated, the order, wallet debit, both earnings and the
    inventory reservation are written, and everything commits together or
    not at all.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        max_retries: int = SETTLEMENT_MAX_RETRIES,
        backoff_seconds: float = SETTLEMENT_RETRY_BACKOFF_SECONDS,
    ):
        self.session_factory = session_factory or async_session
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    async def settle(
        self,
        buyer_id: UUID,
        listing_id: UUID,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
    ) -> Order:
        """
        Settle `amount` (source currency) against a listing.

        Raises:
            NotFound, CurrencyMismatch, AccountCurrencyMismatch,
            ListingUnavailable, AmountOutOfRange, InsufficientBalance:
                request rejected, nothing written
            InsufficientListingAmount: a concurrent order took the inventory
            SettlementFailed: conflicts exhausted retries or an unexpected fault
        """
        amount = quantize(amount)
        if amount <= 0:
            raise ValidationError(f"Amount must be positive, got {amount}", amount=amount)

        try:
            await self._validate(buyer_id, listing_id, amount, from_currency, to_currency)
        except SettlementError as e:
            logger.info(f"Settlement rejected for listing {listing_id}: {e.message}")
            raise

        order = await run_with_retries(
            lambda: self._settle_once(buyer_id, listing_id, amount, from_currency, to_currency),
            label=f"settle listing {listing_id}",
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
        logger.info(
            f"Settled {order.reference}: {amount} {from_currency} -> "
            f"{order.net_amount} {to_currency} (fee {order.fee_amount})"
        )
        return order

    async def quote(self, listing_id: UUID, amount: Decimal) -> QuoteResponse:
        """Preview a settlement without reserving anything"""
        amount = quantize(amount)
        if amount <= 0:
            raise ValidationError(f"Amount must be positive, got {amount}", amount=amount)

        async with transaction_scope(self.session_factory) as session:
            listing = await ListingRepository(session).get_listing(listing_id)

        exchanged, platform_fee, net = compute_settlement(amount, listing.exchange_rate, listing.fee)
        return QuoteResponse(
            listing_id=listing.listing_id,
            amount=amount,
            exchange_rate=listing.exchange_rate,
            exchanged_amount=exchanged,
            fee_amount=platform_fee,
            net_amount=net,
            from_currency=listing.from_currency,
            to_currency=listing.to_currency,
        )

    async def get_order(self, order_id: UUID) -> Order:
        async with transaction_scope(self.session_factory) as session:
            return await OrderRepository(session).get_order(order_id)

    async def list_buyer_orders(self, buyer_id: UUID, limit: int = 50) -> List[Order]:
        async with transaction_scope(self.session_factory) as session:
            return await OrderRepository(session).get_buyer_orders(buyer_id, limit)

    async def list_listing_orders(self, listing_id: UUID) -> List[Order]:
        async with transaction_scope(self.session_factory) as session:
            return await OrderRepository(session).get_listing_orders(listing_id)

    async def _validate(
        self,
        buyer_id: UUID,
        listing_id: UUID,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
    ) -> None:
        """Pre-flight checks, in order. The pair of an unbound listing is only bound on commit."""
        async with transaction_scope(self.session_factory) as session:
            listing = await ListingRepository(session).get_listing(listing_id)

            if listing.is_pair_bound() and (
                listing.from_currency != from_currency or listing.to_currency != to_currency
            ):
                raise CurrencyMismatch(expected=listing.pair, provided=f"{from_currency}/{to_currency}")

            buyer = await UserRepository(session).get_user(buyer_id)
            if buyer.currency != to_currency:
                raise AccountCurrencyMismatch(buyer.currency, to_currency)

            if not listing.is_active():
                raise ListingUnavailable(listing.listing_id, listing.status.value)

            check_amount_bounds(listing, amount)

            balance = await WalletRepository(session).check_balance(buyer_id, from_currency)
            if balance < amount:
                raise InsufficientBalance(required=amount, available=balance, currency=from_currency)

    async def _settle_once(
        self,
        buyer_id: UUID,
        listing_id: UUID,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
    ) -> Order:
        async with transaction_scope(self.session_factory) as session:
            listing_repo = ListingRepository(session)
            order_repo = OrderRepository(session)
            wallet_repo = WalletRepository(session)
            earning_repo = EarningRepository(session)

            # Lock the listing row; concurrent settlements queue here
            listing = await listing_repo.get_listing(listing_id, lock=True)
            listing = await listing_repo.bind_currency_pair_without_commit(
                listing, from_currency, to_currency
            )

            # Re-validate against the locked row
            if not listing.is_active():
                raise ListingUnavailable(listing.listing_id, listing.status.value)
            check_amount_bounds(listing, amount)

            exchanged, platform_fee, net = compute_settlement(
                amount, listing.exchange_rate, listing.fee
            )

            order = await order_repo.create_order_without_commit(
                buyer_id=buyer_id,
                listing_id=listing.listing_id,
                amount=amount,
                from_currency=from_currency,
                to_currency=to_currency,
                exchange_rate=listing.exchange_rate,
                fee_amount=platform_fee,
                total_amount=exchanged,
                net_amount=net,
                status=OrderStatus.COMPLETED,
            )

            await wallet_repo.debit_without_commit(
                buyer_id,
                amount,
                from_currency,
                reference=order.reference,
                type=TransactionType.EXCHANGE_BUY,
                description=f"Exchange {amount} {from_currency} to {to_currency}",
                counterparty_id=listing.seller_id,
                listing_id=listing.listing_id,
                platform_fee_percentage=listing.fee,
                metadata={
                    "order_id": str(order.order_id),
                    "exchange_rate": str(listing.exchange_rate),
                    "exchanged_amount": str(exchanged),
                    "fee_amount": str(platform_fee),
                    "to_currency": to_currency,
                },
            )

            await earning_repo.create_earning_without_commit(
                user_id=listing.seller_id,
                order_id=order.order_id,
                currency=to_currency,
                amount=net,
                fee=platform_fee,
                net_amount=net,
                type=EarningType.EXCHANGE_SALE,
                metadata={"reference": order.reference, "buyer_id": str(buyer_id)},
            )
            await earning_repo.create_earning_without_commit(
                user_id=buyer_id,
                order_id=order.order_id,
                currency=from_currency,
                amount=amount,
                fee=Decimal("0"),
                net_amount=amount,
                type=EarningType.EXCHANGE_PURCHASE,
                metadata={"reference": order.reference, "seller_id": str(listing.seller_id)},
            )

            await listing_repo.reserve_without_commit(listing.listing_id, amount)

            # Transaction commits when exiting context manager
            return order
