"""
Payment gateway callback endpoint
"""

from fastapi import APIRouter

from api.errors import domain_errors
from models.responses import DepositResult, TransactionResponse
from models.schemas import DepositCallback
from services.gateway_callbacks import apply_deposit_callback

router = APIRouter()


@router.post("/callback", response_model=DepositResult)
async def deposit_callback(callback: DepositCallback) -> DepositResult:
    """
    Apply a deposit notification. Safe to deliver more than once: a known
    reference returns the original transaction with already_applied=true.
    """
    with domain_errors():
        transaction, already_applied = await apply_deposit_callback(callback)
    return DepositResult(
        already_applied=already_applied,
        transaction=TransactionResponse.model_validate(transaction),
    )
