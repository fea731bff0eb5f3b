"""
Database repositories re-exported from separate files.
"""

from .repositories_accounts import UserRepository
from .repositories_earnings import EarningRepository
from .repositories_goods import GoodsRepository
from .repositories_listings import ListingRepository
from .repositories_orders import OrderRepository
from .repositories_payout_methods import PayoutMethodRepository
from .repositories_payouts import PayoutRepository
from .repositories_wallets import WalletRepository

__all__ = [
    "UserRepository",
    "WalletRepository",
    "ListingRepository",
    "OrderRepository",
    "EarningRepository",
    "PayoutRepository",
    "PayoutMethodRepository",
    "GoodsRepository",
]
