"""
Centralized enums to avoid circular imports
"""

from enum import Enum


class ListingStatus(str, Enum):
    """Exchange listing lifecycle states"""

    ACTIVE = "active"
    PAUSED = "paused"  # Seller paused, can be resumed
    COMPLETED = "completed"  # Inventory exhausted
    EXPIRED = "expired"  # Deactivated by seller


class OrderStatus(str, Enum):
    """Exchange order states"""

    PENDING = "pending"
    COMPLETED = "completed"


class EarningType(str, Enum):
    """Source of an earning credit"""

    EXCHANGE_SALE = "exchange_sale"
    EXCHANGE_PURCHASE = "exchange_purchase"
    REFERRAL = "referral"
    BONUS = "bonus"


class EarningStatus(str, Enum):
    """Earning states - forward only"""

    AVAILABLE = "available"
    PROCESSING = "processing"  # Claimed by a pending payout
    PAID = "paid"


class TransactionType(str, Enum):
    """Ledger transaction types"""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    EXCHANGE_BUY = "exchange_buy"
    EXCHANGE_SELL = "exchange_sell"
    PLATFORM_FEE = "platform_fee"
    ESCROW_HOLD = "escrow_hold"
    ESCROW_RELEASE = "escrow_release"
    REFUND = "refund"
    PAYOUT_FEE = "payout_fee"
    PAYOUT = "payout"


class TransactionStatus(str, Enum):
    """Ledger transaction states"""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class GoodsListingStatus(str, Enum):
    """Goods listing states"""

    ACTIVE = "active"
    SOLD = "sold"  # Quantity exhausted
    INACTIVE = "inactive"


class GoodsOrderStatus(str, Enum):
    """Goods order states"""

    PENDING = "pending"  # Funds held in escrow
    COMPLETED = "completed"  # Escrow released to seller
    REFUNDED = "refunded"  # Escrow returned to buyer


class EscrowStatus(str, Enum):
    """Escrow states - released and refunded are terminal"""

    HELD = "held"
    RELEASED = "released"
    REFUNDED = "refunded"


class PayoutStatus(str, Enum):
    """Payout lifecycle states"""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PayoutMethodType(str, Enum):
    """Supported payout rails"""

    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    PAYPAL = "paypal"
    PAYSHAP = "payshap"
    MULTICAIXA = "multicaixa"
    EWALLET = "ewallet"

    @property
    def label(self) -> str:
        """Human readable name"""
        return {
            PayoutMethodType.BANK_TRANSFER: "Bank Transfer",
            PayoutMethodType.MOBILE_MONEY: "Mobile Money",
            PayoutMethodType.PAYPAL: "PayPal",
            PayoutMethodType.PAYSHAP: "PayShap",
            PayoutMethodType.MULTICAIXA: "Multicaixa",
            PayoutMethodType.EWALLET: "E-Wallet",
        }[self]
