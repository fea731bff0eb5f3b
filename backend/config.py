"""
Exchange configuration
"""
import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./settlement.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Money
AMOUNT_QUANTUM = Decimal("0.00000001")  # Stored as BIGINT units of this
RATE_TOLERANCE = Decimal("0.000001")

# Settlement
SETTLEMENT_MAX_RETRIES = 3
SETTLEMENT_RETRY_BACKOFF_SECONDS = 0.05

# Goods orders (escrow variant)
GOODS_BUYER_FEE_RATE = Decimal("0.02")
GOODS_LISTING_FEE_RATE = Decimal("0.01")
GOODS_SELLER_COMMISSION_RATE = Decimal("0.05")

# Payouts
PAYOUT_FEE_RATE = Decimal("0.03")
DEFAULT_CROSS_BORDER_RATE = Decimal("1.1")
PAYOUT_RAIL_TIMEOUT_SECONDS = 10

# Market data (display only)
EXCHANGE_RATE_API_URL = os.getenv("EXCHANGE_RATE_API_URL", "https://open.er-api.com/v6/latest")
EXCHANGE_RATE_API_KEY = os.getenv("EXCHANGE_RATE_API_KEY")
MARKET_DATA_TIMEOUT_SECONDS = 10
MARKET_DATA_CACHE_SECONDS = 3600
MARKET_DATA_FALLBACK_VARIATION = Decimal("0.01")
