"""Negotiation endpoints - offers, agreement, orders and the chat transcript"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlalchemy.orm import Session

from agriloan_gateway.api.v1.schemas import (
    ActorRequest,
    MessageRequest,
    NegotiationListResponse,
    NegotiationResponse,
    NegotiationStartRequest,
    OfferRequest,
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
from agriloan_gateway.domain.chat import post_message
from agriloan_gateway.domain.marketplace import close_negotiation, complete_order, open_negotiation
from agriloan_gateway.domain.models import Negotiation
from agriloan_gateway.domain.negotiation import accept_offer, decline_offer, make_offer, order_total

router = APIRouter()


def negotiation_response(negotiation: Negotiation) -> NegotiationResponse:
    return NegotiationResponse(**asdict(negotiation), order_total=order_total(negotiation))


def _track(request: Request, negotiation: Negotiation, actor_id: str, event: str) -> None:
    negotiation_event_counter.labels(event=event).inc()
    log_negotiation_event(get_request_id(request), negotiation.id, actor_id, event, negotiation.status.value)


@router.post("/negotiations", response_model=NegotiationResponse, status_code=201)
def start_negotiation(
    request_body: NegotiationStartRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Buyer opens a negotiation on a listing.

    A buyer has at most one open negotiation per listing: asking again
    returns the existing one with 200 instead of 201.
    """
    buyer = UserRepository(db).get(request_body.buyer_id)
    listings = ListingRepository(db)
    negotiations = NegotiationRepository(db)

    listing = listings.get_for_update(request_body.listing_id)
    negotiation, updated_listing, created = open_negotiation(
        listing, buyer, negotiations.list_by_listing(listing.id)
    )
    if not created:
        response.status_code = 200
        return negotiation_response(negotiation)

    saved = negotiations.add(negotiation)
    if updated_listing.status != listing.status:
        listings.save(updated_listing)
    db.commit()

    _track(request, saved, buyer.id, "started")
    return negotiation_response(saved)


@router.get("/negotiations", response_model=NegotiationListResponse)
def list_negotiations(
    buyer_id: Optional[str] = Query(None),
    farmer_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """A party's negotiations, most recently active first"""
    repo = NegotiationRepository(db)
    if buyer_id:
        found = repo.list_by_buyer(buyer_id)
    elif farmer_id:
        found = repo.list_by_farmer(farmer_id)
    else:
        raise HTTPException(status_code=422, detail="buyer_id or farmer_id is required")
    return NegotiationListResponse(negotiations=[negotiation_response(n) for n in found])


@router.get("/negotiations/{negotiation_id}", response_model=NegotiationResponse)
def get_negotiation(negotiation_id: str, db: Session = Depends(get_db)):
    return negotiation_response(NegotiationRepository(db).get(negotiation_id))


@router.post("/negotiations/{negotiation_id}/offers", response_model=NegotiationResponse)
def submit_offer(
    negotiation_id: str,
    request_body: OfferRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Offer or counter-offer; the other party is expected to respond next"""
    actor = UserRepository(db).get(request_body.actor_id)
    repo = NegotiationRepository(db)
    negotiation = repo.get_for_update(negotiation_id)
    listing = ListingRepository(db).get(negotiation.listing_id)

    updated = make_offer(
        negotiation,
        actor,
        request_body.price_per_kg,
        request_body.quantity_kg,
        available_quantity_kg=listing.quantity_kg,
    )
    saved = repo.save(updated)
    db.commit()

    _track(request, saved, actor.id, "offer")
    return negotiation_response(saved)


@router.post("/negotiations/{negotiation_id}/accept", response_model=NegotiationResponse)
def accept(negotiation_id: str, request_body: ActorRequest, request: Request, db: Session = Depends(get_db)):
    actor = UserRepository(db).get(request_body.actor_id)
    repo = NegotiationRepository(db)
    saved = repo.save(accept_offer(repo.get_for_update(negotiation_id), actor))
    db.commit()

    _track(request, saved, actor.id, "accepted")
    return negotiation_response(saved)


@router.post("/negotiations/{negotiation_id}/decline", response_model=NegotiationResponse)
def decline(negotiation_id: str, request_body: ActorRequest, request: Request, db: Session = Depends(get_db)):
    actor = UserRepository(db).get(request_body.actor_id)
    repo = NegotiationRepository(db)
    saved = repo.save(decline_offer(repo.get_for_update(negotiation_id), actor))
    db.commit()

    _track(request, saved, actor.id, "declined")
    return negotiation_response(saved)


@router.post("/negotiations/{negotiation_id}/order", response_model=NegotiationResponse)
def place_order(negotiation_id: str, request_body: ActorRequest, request: Request, db: Session = Depends(get_db)):
    """
    Buyer places the order on agreed terms.

    The listing is marked SOLD and every other open negotiation on it is
    withdrawn in the same transaction.
    """
    buyer = UserRepository(db).get(request_body.actor_id)
    listings = ListingRepository(db)
    negotiations = NegotiationRepository(db)

    # listing row first, then the negotiation, in every multi-row write
    listing_id = negotiations.get(negotiation_id).listing_id
    listing = listings.get_for_update(listing_id)
    negotiation = negotiations.get_for_update(negotiation_id)

    ordered, sold, withdrawn = complete_order(
        negotiation, listing, negotiations.list_by_listing(listing_id), buyer
    )
    saved = negotiations.save(ordered)
    for other in withdrawn:
        negotiations.save(other)
    listings.save(sold)
    db.commit()

    _track(request, saved, buyer.id, "order")
    for other in withdrawn:
        _track(request, other, buyer.id, "withdrawn")
    return negotiation_response(saved)


@router.post("/negotiations/{negotiation_id}/cancel", response_model=NegotiationResponse)
def cancel(negotiation_id: str, request_body: ActorRequest, request: Request, db: Session = Depends(get_db)):
    actor = UserRepository(db).get(request_body.actor_id)
    listings = ListingRepository(db)
    negotiations = NegotiationRepository(db)

    listing_id = negotiations.get(negotiation_id).listing_id
    listing = listings.get_for_update(listing_id)
    negotiation = negotiations.get_for_update(negotiation_id)

    cancelled, updated_listing = close_negotiation(
        negotiation, listing, negotiations.list_by_listing(listing_id), actor
    )
    saved = negotiations.save(cancelled)
    if updated_listing.status != listing.status:
        listings.save(updated_listing)
    db.commit()

    _track(request, saved, actor.id, "cancelled")
    return negotiation_response(saved)


@router.post("/negotiations/{negotiation_id}/messages", response_model=NegotiationResponse, status_code=201)
def send_message(
    negotiation_id: str,
    request_body: MessageRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Append a chat message; the transcript is append-only"""
    sender = UserRepository(db).get(request_body.sender_id)
    repo = NegotiationRepository(db)
    saved = repo.save(post_message(repo.get_for_update(negotiation_id), sender, request_body.text))
    db.commit()

    _track(request, saved, sender.id, "message")
    return negotiation_response(saved)
