"""
Earnings API endpoints
"""

from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter

from enums import EarningStatus
from models.responses import BalanceResponse, EarningResponse
from services import payouts

router = APIRouter()


@router.get("/{user_id}", response_model=List[EarningResponse])
async def get_earnings(
    user_id: UUID, status: Optional[EarningStatus] = None, limit: int = 50
) -> List[EarningResponse]:
    earnings = await payouts.list_earnings(user_id, status, limit)
    return [EarningResponse.model_validate(earning) for earning in earnings]


@router.get("/{user_id}/balances", response_model=List[BalanceResponse])
async def get_balances(user_id: UUID) -> List[BalanceResponse]:
    """Available, processing and paid totals per currency"""
    return await payouts.balances_by_currency(user_id)


@router.get("/{user_id}/available")
async def get_available_balance(user_id: UUID, currency: str) -> Dict[str, str]:
    balance: Decimal = await payouts.available_balance(user_id, currency.upper())
    return {"currency": currency.upper(), "available": str(balance)}
