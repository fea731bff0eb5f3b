"""
User and wallet API endpoints
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from api.errors import domain_errors
from models.responses import TransactionResponse
from services import wallets

router = APIRouter()


class UserCreateRequest(BaseModel):
    currency: str
    user_id: Optional[UUID] = None


class UserResponse(BaseModel):
    user_id: UUID
    currency: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletResponse(BaseModel):
    wallet_id: UUID
    currency: str
    balance: Decimal

    model_config = ConfigDict(from_attributes=True)


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(request: UserCreateRequest) -> UserResponse:
    with domain_errors():
        user = await wallets.create_user(request.currency.upper(), request.user_id)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=List[WalletResponse])
async def get_wallets(user_id: UUID) -> List[WalletResponse]:
    found = await wallets.get_wallets(user_id)
    return [WalletResponse.model_validate(wallet) for wallet in found]


@router.get("/{user_id}/transactions", response_model=List[TransactionResponse])
async def get_transactions(user_id: UUID, limit: int = 50) -> List[TransactionResponse]:
    found = await wallets.get_transactions(user_id, limit)
    return [TransactionResponse.model_validate(transaction) for transaction in found]
