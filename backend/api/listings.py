"""
Exchange listing API endpoints
"""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query

from api.errors import domain_errors
from engine import settlement_engine
from models.responses import ListingResponse, QuoteResponse
from models.schemas import ListingActionRequest, ListingCreateRequest
from services import listings

router = APIRouter()


@router.post("/", response_model=ListingResponse, status_code=201)
async def create_listing(request: ListingCreateRequest) -> ListingResponse:
    with domain_errors():
        listing = await listings.create_listing(
            seller_id=request.seller_id,
            amount=request.amount,
            fee=request.fee,
            exchange_rate=request.exchange_rate,
            min_amount=request.min_amount,
            max_amount=request.max_amount,
            from_currency=request.from_currency,
            to_currency=request.to_currency,
        )
    return ListingResponse.model_validate(listing)


@router.get("/", response_model=List[ListingResponse])
async def get_active_listings(
    from_currency: Optional[str] = None, to_currency: Optional[str] = None
) -> List[ListingResponse]:
    """Active listings with inventory, optionally filtered by pair"""
    found = await listings.list_active_listings(
        from_currency.upper() if from_currency else None,
        to_currency.upper() if to_currency else None,
    )
    return [ListingResponse.model_validate(listing) for listing in found]


@router.get("/seller/{seller_id}", response_model=List[ListingResponse])
async def get_seller_listings(seller_id: UUID) -> List[ListingResponse]:
    found = await listings.list_seller_listings(seller_id)
    return [ListingResponse.model_validate(listing) for listing in found]


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(listing_id: UUID) -> ListingResponse:
    with domain_errors():
        listing = await listings.get_listing(listing_id)
    return ListingResponse.model_validate(listing)


@router.get("/{listing_id}/quote", response_model=QuoteResponse)
async def quote(listing_id: UUID, amount: Decimal = Query(gt=0)) -> QuoteResponse:
    """Preview exchanged amount, fee and net for `amount`"""
    with domain_errors():
        return await settlement_engine.quote(listing_id, amount)


@router.post("/{listing_id}/pause", response_model=ListingResponse)
async def pause_listing(listing_id: UUID, request: ListingActionRequest) -> ListingResponse:
    with domain_errors():
        listing = await listings.pause_listing(request.seller_id, listing_id)
    return ListingResponse.model_validate(listing)


@router.post("/{listing_id}/resume", response_model=ListingResponse)
async def resume_listing(listing_id: UUID, request: ListingActionRequest) -> ListingResponse:
    with domain_errors():
        listing = await listings.resume_listing(request.seller_id, listing_id)
    return ListingResponse.model_validate(listing)


@router.post("/{listing_id}/deactivate", response_model=ListingResponse)
async def deactivate_listing(listing_id: UUID, request: ListingActionRequest) -> ListingResponse:
    with domain_errors():
        listing = await listings.deactivate_listing(request.seller_id, listing_id)
    return ListingResponse.model_validate(listing)
