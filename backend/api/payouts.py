"""
Payout API endpoints
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter

from api.errors import domain_errors
from models.responses import PayoutResponse
from models.schemas import PayoutRequest
from services import payouts

router = APIRouter()


@router.post("/", response_model=PayoutResponse, status_code=201)
async def request_payout(request: PayoutRequest) -> PayoutResponse:
    """Claim available earnings into a pending payout"""
    with domain_errors():
        payout = await payouts.request_payout(
            request.user_id, request.amount, request.currency, request.payout_method_id
        )
    return PayoutResponse.model_validate(payout)


@router.get("/user/{user_id}", response_model=List[PayoutResponse])
async def get_payouts(user_id: UUID, limit: int = 20) -> List[PayoutResponse]:
    found = await payouts.list_payouts(user_id, limit)
    return [PayoutResponse.model_validate(payout) for payout in found]


@router.get("/{payout_id}", response_model=PayoutResponse)
async def get_payout(payout_id: UUID, user_id: UUID) -> PayoutResponse:
    with domain_errors():
        payout = await payouts.get_payout(user_id, payout_id)
    return PayoutResponse.model_validate(payout)


@router.post("/{payout_id}/process", response_model=PayoutResponse)
async def process_payout(payout_id: UUID) -> PayoutResponse:
    """Operator action: disburse and complete"""
    with domain_errors():
        payout = await payouts.process_payout(payout_id)
    return PayoutResponse.model_validate(payout)


@router.post("/{payout_id}/fail", response_model=PayoutResponse)
async def fail_payout(payout_id: UUID) -> PayoutResponse:
    """Operator action: fail and release the claimed earnings"""
    with domain_errors():
        payout = await payouts.fail_payout(payout_id)
    return PayoutResponse.model_validate(payout)
