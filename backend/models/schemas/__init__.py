"""
Request schemas and payout method detail variants
"""

from models.schemas.payout_methods import (
    BankTransferDetails,
    EWalletDetails,
    MobileMoneyDetails,
    MulticaixaDetails,
    PayoutDetails,
    PayPalDetails,
    PayShapDetails,
    dump_payout_details,
    parse_payout_details,
)
from models.schemas.settlement import (
    DepositCallback,
    GoodsListingCreateRequest,
    GoodsOrderActionRequest,
    GoodsOrderRequest,
    GoodsPayoutRequest,
    ListingActionRequest,
    ListingCreateRequest,
    PayoutMethodCreateRequest,
    PayoutMethodUpdateRequest,
    PayoutRequest,
    SettlementRequest,
)

__all__ = [
    # Payout method details
    "BankTransferDetails",
    "EWalletDetails",
    "MobileMoneyDetails",
    "MulticaixaDetails",
    "PayoutDetails",
    "PayPalDetails",
    "PayShapDetails",
    "dump_payout_details",
    "parse_payout_details",
    # Requests
    "DepositCallback",
    "GoodsListingCreateRequest",
    "GoodsOrderActionRequest",
    "GoodsOrderRequest",
    "GoodsPayoutRequest",
    "ListingActionRequest",
    "ListingCreateRequest",
    "PayoutMethodCreateRequest",
    "PayoutMethodUpdateRequest",
    "PayoutRequest",
    "SettlementRequest",
]
