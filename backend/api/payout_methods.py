"""
Payout method API endpoints
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter

from api.errors import domain_errors
from models.responses import PayoutMethodResponse
from models.schemas import PayoutMethodCreateRequest, PayoutMethodUpdateRequest
from services import payouts

router = APIRouter()


@router.post("/", response_model=PayoutMethodResponse, status_code=201)
async def add_payout_method(request: PayoutMethodCreateRequest) -> PayoutMethodResponse:
    with domain_errors():
        method = await payouts.add_payout_method(
            request.user_id, request.type, request.details, request.currency, request.is_default
        )
    return PayoutMethodResponse.model_validate(method)


@router.get("/{user_id}", response_model=List[PayoutMethodResponse])
async def get_payout_methods(user_id: UUID) -> List[PayoutMethodResponse]:
    methods = await payouts.list_payout_methods(user_id)
    return [PayoutMethodResponse.model_validate(method) for method in methods]


@router.put("/{payout_method_id}", response_model=PayoutMethodResponse)
async def update_payout_method(
    payout_method_id: UUID, request: PayoutMethodUpdateRequest
) -> PayoutMethodResponse:
    with domain_errors():
        method = await payouts.update_payout_method(
            request.user_id, payout_method_id, request.details, request.currency
        )
    return PayoutMethodResponse.model_validate(method)


@router.post("/{payout_method_id}/default", response_model=PayoutMethodResponse)
async def set_default_payout_method(payout_method_id: UUID, user_id: UUID) -> PayoutMethodResponse:
    with domain_errors():
        method = await payouts.set_default_payout_method(user_id, payout_method_id)
    return PayoutMethodResponse.model_validate(method)


@router.delete("/{payout_method_id}", response_model=Optional[PayoutMethodResponse])
async def remove_payout_method(
    payout_method_id: UUID, user_id: UUID
) -> Optional[PayoutMethodResponse]:
    """Returns the method promoted to default, if any"""
    with domain_errors():
        promoted = await payouts.remove_payout_method(user_id, payout_method_id)
    return PayoutMethodResponse.model_validate(promoted) if promoted else None
