import logging
from contextlib import asynccontextmanager
from typing import List

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.earnings import router as earnings_router
from api.goods import router as goods_router
from api.listings import router as listings_router
from api.market_data import router as market_data_router
from api.orders import router as orders_router
from api.payments import router as payments_router
from api.payout_methods import router as payout_methods_router
from api.payouts import router as payouts_router
from api.wallets import router as wallets_router
from config import LOG_LEVEL
from database import init_db
from models.core import Currency

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - startup and shutdown.
    """
    logger.info("Starting settlement backend...")

    # Initialize database
    await init_db()

    logger.info(f"Settlement backend ready for {len(Currency.get_all())} currencies")

    yield

    logger.info("Settlement backend shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Currency Exchange Settlement",
    description="Peer-to-peer currency exchange listings, settlement, escrow and payouts",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:8080"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(wallets_router, prefix="/api/wallets", tags=["Wallets"])
app.include_router(listings_router, prefix="/api/listings", tags=["Listings"])
app.include_router(orders_router, prefix="/api/orders", tags=["Orders"])
app.include_router(earnings_router, prefix="/api/earnings", tags=["Earnings"])
app.include_router(payouts_router, prefix="/api/payouts", tags=["Payouts"])
app.include_router(payout_methods_router, prefix="/api/payout-methods", tags=["Payout Methods"])
app.include_router(goods_router, prefix="/api/goods", tags=["Goods"])
app.include_router(payments_router, prefix="/api/payments", tags=["Payments"])
app.include_router(market_data_router, prefix="/api/market-data", tags=["Market Data"])


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"status": "running", "service": "settlement"}


@app.get("/api/currencies")
async def get_currencies() -> List[str]:
    """Settleable currency codes"""
    return Currency.get_all()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
