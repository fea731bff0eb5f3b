"""
Settlement error taxonomy, shared by repositories, services and the API layer
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class SettlementError(Exception):
    """Base class for all domain errors"""

    code = "settlement_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_detail(self) -> Dict[str, Any]:
        """Serializable error body for API responses"""
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        for key, value in self.details.items():
            body[key] = str(value) if isinstance(value, Decimal) else value
        return body


class ValidationError(SettlementError, ValueError):
    """Request rejected before any state was touched. Retryable after fixing input."""

    code = "validation_error"


class CurrencyMismatch(ValidationError):
    code = "currency_mismatch"

    def __init__(self, expected: str, provided: str):
        super().__init__(
            f"Currency pair {provided} does not match the listing pair {expected}",
            expected=expected,
            provided=provided,
        )


class AccountCurrencyMismatch(ValidationError):
    code = "account_currency_mismatch"

    def __init__(self, account_currency: str, to_currency: str):
        super().__init__(
            f"Account currency ({account_currency}) does not match the target "
            f"currency ({to_currency})",
            account_currency=account_currency,
            to_currency=to_currency,
        )


class AmountOutOfRange(ValidationError):
    """Requested amount violates a listing bound: minimum, maximum or available"""

    code = "amount_out_of_range"

    def __init__(self, bound: str, requested: Decimal, limit: Decimal, currency: Optional[str] = None):
        relation = "below" if bound == "minimum" else "above"
        super().__init__(
            f"Amount {requested} is {relation} the {bound} amount {limit}",
            bound=bound,
            requested=requested,
            limit=limit,
            currency=currency,
        )
        self.bound = bound
        self.requested = requested
        self.limit = limit


class InsufficientListingAmount(AmountOutOfRange):
    """Reservation lost against the inventory actually left on the listing row"""

    code = "insufficient_listing_amount"

    def __init__(self, requested: Decimal, available: Decimal):
        super().__init__("available", requested, available)
        self.available = available


class InvalidPayoutMethod(ValidationError):
    code = "invalid_payout_method"


class ReferenceConflict(ValidationError):
    """A gateway reference already names a different ledger entry"""

    code = "reference_conflict"

    def __init__(self, reference: str):
        super().__init__(
            f"Reference {reference} is already used by another transaction",
            reference=reference,
        )


class InsufficientBalance(SettlementError):
    code = "insufficient_balance"

    def __init__(self, required: Decimal, available: Decimal, currency: str):
        shortfall = required - available
        super().__init__(
            f"Insufficient balance: need {required} {currency}, have {available} {currency}",
            required=required,
            available=available,
            shortfall=shortfall,
            currency=currency,
        )
        self.required = required
        self.available = available
        self.shortfall = shortfall
        self.currency = currency


class ListingUnavailable(SettlementError):
    """Listing is paused, exhausted or expired"""

    code = "listing_unavailable"

    def __init__(self, listing_id: Any, status: str):
        super().__init__(
            "This listing is no longer available",
            listing_id=str(listing_id),
            status=status,
        )


class NotFound(SettlementError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found: {entity_id}", entity=entity, id=str(entity_id))


class PermissionDenied(SettlementError):
    code = "permission_denied"


class InvalidStateTransition(SettlementError):
    code = "invalid_state_transition"

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"Cannot move {entity} from {current} to {target}",
            entity=entity,
            current=current,
            target=target,
        )


class ConcurrencyConflict(SettlementError):
    """Serialization or lock conflict. Internal - retried, never shown to callers."""

    code = "concurrency_conflict"


class SettlementFailed(SettlementError):
    """Opaque failure. The cause is logged server-side only."""

    code = "settlement_failed"

    def __init__(self, message: str = "Failed to complete the operation. Please try again."):
        super().__init__(message)
