"""
Response models for services and APIs
"""

from models.responses.settlement import (
    BalanceResponse,
    CurrenciesResult,
    CurrencyInfo,
    DepositResult,
    EarningResponse,
    EscrowResponse,
    FeeResponse,
    GoodsListingResponse,
    GoodsOrderDetail,
    GoodsOrderResponse,
    ListingResponse,
    OrderResponse,
    PayoutMethodResponse,
    PayoutResponse,
    QuoteResponse,
    RateInfo,
    RatesResult,
    TransactionResponse,
)

__all__ = [
    # Exchange
    "ListingResponse",
    "OrderResponse",
    "QuoteResponse",
    # Earnings and payouts
    "BalanceResponse",
    "EarningResponse",
    "PayoutMethodResponse",
    "PayoutResponse",
    # Ledger
    "DepositResult",
    "TransactionResponse",
    # Goods
    "EscrowResponse",
    "FeeResponse",
    "GoodsListingResponse",
    "GoodsOrderDetail",
    "GoodsOrderResponse",
    # Market data
    "CurrenciesResult",
    "CurrencyInfo",
    "RateInfo",
    "RatesResult",
]
