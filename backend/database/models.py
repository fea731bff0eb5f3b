"""
Database models re-exported from separate model files
"""

# Accounts and wallets
from database.models_accounts import UserAccount, WalletAccount

# Exchange listings, orders, earnings
from database.models_exchange import Earning, Listing, Order

# Goods orders (escrow variant)
from database.models_goods import Escrow, Fee, GoodsListing, GoodsOrder

# Ledger
from database.models_ledger import Transaction

# Payouts
from database.models_payouts import Payout, PayoutMethod

__all__ = [
    # Accounts
    "UserAccount",
    "WalletAccount",
    # Exchange
    "Listing",
    "Order",
    "Earning",
    # Ledger
    "Transaction",
    # Goods
    "GoodsListing",
    "GoodsOrder",
    "Escrow",
    "Fee",
    # Payouts
    "Payout",
    "PayoutMethod",
]
