"""Produce listing endpoints"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from agriloan_gateway.api.v1.schemas import (
    ListingCancelRequest,
    ListingListResponse,
    ListingRequest,
    ListingResponse,
)
from agriloan_gateway.api.dependencies import get_request_id
from agriloan_gateway.infrastructure.database.session import get_db
from agriloan_gateway.infrastructure.database.repositories import (
    ListingRepository,
    NegotiationRepository,
    UserRepository,
)
from agriloan_gateway.infrastructure.observability.logging import log_negotiation_event
from agriloan_gateway.infrastructure.observability.metrics import negotiation_event_counter
from agriloan_gateway.domain.marketplace import MARKETABLE_STATUSES, cancel_listing, create_listing

router = APIRouter()


@router.post("/listings", response_model=ListingResponse, status_code=201)
def create_produce_listing(request_body: ListingRequest, db: Session = Depends(get_db)):
    farmer = UserRepository(db).get(request_body.farmer_id)
    listing = create_listing(
        farmer,
        crop_type=request_body.crop_type,
        quantity_kg=request_body.quantity_kg,
        quality_grade=request_body.quality_grade,
        price_per_kg=request_body.price_per_kg,
        other_crop_type=request_body.other_crop_type,
        description=request_body.description,
        photo_file_name=request_body.photo_file_name,
    )
    saved = ListingRepository(db).add(listing)
    db.commit()
    return ListingResponse(**asdict(saved))


@router.get("/listings", response_model=ListingListResponse)
def list_listings(
    farmer_id: Optional[str] = Query(None, description="A farmer's own listings, any status"),
    db: Session = Depends(get_db),
):
    """Buyers see the open market; a farmer sees everything they listed"""
    repo = ListingRepository(db)
    listings = repo.list_by_farmer(farmer_id) if farmer_id else repo.list_by_status(MARKETABLE_STATUSES)
    return ListingListResponse(listings=[ListingResponse(**asdict(l)) for l in listings])


@router.get("/listings/{listing_id}", response_model=ListingResponse)
def get_listing(listing_id: str, db: Session = Depends(get_db)):
    return ListingResponse(**asdict(ListingRepository(db).get(listing_id)))


@router.post("/listings/{listing_id}/cancel", response_model=ListingResponse)
def cancel_produce_listing(
    listing_id: str,
    request_body: ListingCancelRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Farmer withdraws a listing; open negotiations on it are closed"""
    farmer = UserRepository(db).get(request_body.farmer_id)
    listings = ListingRepository(db)
    negotiations = NegotiationRepository(db)

    listing = listings.get_for_update(listing_id)
    cancelled, withdrawn = cancel_listing(listing, farmer, negotiations.list_by_listing(listing_id))
    for negotiation in withdrawn:
        negotiations.save(negotiation)
    saved = listings.save(cancelled)
    db.commit()

    request_id = get_request_id(request)
    for negotiation in withdrawn:
        negotiation_event_counter.labels(event="withdrawn").inc()
        log_negotiation_event(request_id, negotiation.id, farmer.id, "withdrawn", negotiation.status.value)
    return ListingResponse(**asdict(saved))
