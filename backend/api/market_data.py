"""
Market data API endpoints (display rates only, never used for settlement)
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter

from models.responses import CurrenciesResult, RateInfo, RatesResult
from services.market_data import market_data_service

router = APIRouter()


# Plain def: the rates client blocks, FastAPI runs these in its threadpool


@router.get("/rates", response_model=RatesResult)
def get_rates(base: str = "USD") -> RatesResult:
    return market_data_service.get_rates(base)


@router.get("/stats", response_model=RateInfo)
def get_24h_stats(base: str, target: str, fallback_rate: Optional[Decimal] = None) -> RateInfo:
    """Rate, 24h change and high/low band; falls back to `fallback_rate`"""
    return market_data_service.get_24h_stats(base, target, fallback_rate)


@router.get("/currencies", response_model=CurrenciesResult)
def get_currencies() -> CurrenciesResult:
    return market_data_service.list_currencies()
