"""Negotiation state machine - offers, counter-offers, agreement and order placement"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional, Tuple

from agriloan_gateway.domain.chat import CLOSED_STATUSES, append_message, system_message
from agriloan_gateway.domain.exceptions import InvalidStateError, ValidationError
from agriloan_gateway.domain.models import (
    ListingStatus,
    Negotiation,
    NegotiationStatus,
    ProduceListing,
    User,
    UserRole,
)
from agriloan_gateway.domain.validation import require_positive, require_role
from agriloan_gateway.utils.date_utils import utcnow
from agriloan_gateway.utils.formatting import format_kg, format_naira

TERMINAL_STATUSES = CLOSED_STATUSES

# Whose move each pending status waits for
PENDING_FOR = {
    UserRole.FARMER: NegotiationStatus.PENDING_FARMER,
    UserRole.BUYER: NegotiationStatus.PENDING_BUYER,
}


def is_terminal(negotiation: Negotiation) -> bool:
    return negotiation.status in TERMINAL_STATUSES


def order_total(negotiation: Negotiation) -> Optional[float]:
    if negotiation.current_offer_price_per_kg is None or negotiation.current_offer_quantity_kg is None:
        return None
    return negotiation.current_offer_quantity_kg * negotiation.current_offer_price_per_kg


def find_open(negotiations: Iterable[Negotiation], listing_id: str, buyer_id: str) -> Optional[Negotiation]:
    for negotiation in negotiations:
        if (
            negotiation.listing_id == listing_id
            and negotiation.buyer_id == buyer_id
            and not is_terminal(negotiation)
        ):
            return negotiation
    return None


def party_role(negotiation: Negotiation, actor: User) -> UserRole:
    if actor.id == negotiation.farmer_id:
        return UserRole.FARMER
    if actor.id == negotiation.buyer_id:
        return UserRole.BUYER
    raise ValidationError(f"User {actor.id} is not a party to negotiation {negotiation.id}")


def _require_open_for_offers(negotiation: Negotiation) -> None:
    if is_terminal(negotiation) or negotiation.status == NegotiationStatus.AGREED:
        raise InvalidStateError(
            f"Negotiation {negotiation.id} is {negotiation.status.value}; offers are closed"
        )


def _require_turn(negotiation: Negotiation, role: UserRole) -> None:
    if negotiation.status != PENDING_FOR[role]:
        raise InvalidStateError(f"It is not the {role.value.lower()}'s turn to respond")


def _describe_terms(price_per_kg: int, quantity_kg: float) -> str:
    return f"{format_naira(price_per_kg)}/kg for {format_kg(quantity_kg)}"


def start_negotiation(
    listing: ProduceListing,
    buyer: User,
    existing: Iterable[Negotiation],
    now: Optional[datetime] = None,
) -> Tuple[Negotiation, bool]:
    """
    Open a negotiation on a listing, or return the buyer's open one.

    The buyer initiates, so the farmer acts next (PENDING_FARMER). The
    listing's price and quantity are seeded as reference terms; they are
    not an offer either side can accept until someone proposes them.

    Returns: (negotiation, created)
    """
    require_role(buyer, UserRole.BUYER, "start a negotiation")
    current = find_open(existing, listing.id, buyer.id)
    if current is not None:
        return current, False

    if listing.status not in (ListingStatus.AVAILABLE, ListingStatus.NEGOTIATING):
        raise InvalidStateError(f"Listing {listing.id} is {listing.status.value}")

    now = now or utcnow()
    negotiation = Negotiation(
        id=None,
        listing_id=listing.id,
        buyer_id=buyer.id,
        buyer_name=buyer.full_name,
        farmer_id=listing.farmer_id,
        farmer_name=listing.farmer_name,
        crop_type=listing.crop_type,
        status=NegotiationStatus.PENDING_FARMER,
        last_update=now,
        current_offer_price_per_kg=listing.price_per_kg,
        current_offer_quantity_kg=listing.quantity_kg,
    )
    started = system_message(
        f"{buyer.full_name} started a negotiation for {listing.crop_type.value}.", now
    )
    return append_message(negotiation, started), True


def make_offer(
    negotiation: Negotiation,
    actor: User,
    price_per_kg: int,
    quantity_kg: float,
    now: Optional[datetime] = None,
    available_quantity_kg: Optional[float] = None,
) -> Negotiation:
    """Either party proposes terms; the other party is then expected to respond"""
    role = party_role(negotiation, actor)
    _require_open_for_offers(negotiation)
    require_positive("Offer price", price_per_kg)
    require_positive("Offer quantity", quantity_kg)
    if available_quantity_kg is not None and quantity_kg > available_quantity_kg:
        raise ValidationError(
            f"Offer quantity {format_kg(quantity_kg)} exceeds the {format_kg(available_quantity_kg)} listed"
        )

    next_status = (
        NegotiationStatus.PENDING_FARMER if role == UserRole.BUYER else NegotiationStatus.PENDING_BUYER
    )
    updated = replace(
        negotiation,
        status=next_status,
        current_offer_price_per_kg=price_per_kg,
        current_offer_quantity_kg=quantity_kg,
        current_offer_by=actor.id,
    )
    note = system_message(
        f"{actor.full_name} made an offer: {_describe_terms(price_per_kg, quantity_kg)}.", now
    )
    return append_message(updated, note)


def accept_offer(negotiation: Negotiation, actor: User, now: Optional[datetime] = None) -> Negotiation:
    """The party whose turn it is accepts the other party's live offer"""
    role = party_role(negotiation, actor)
    _require_open_for_offers(negotiation)
    _require_turn(negotiation, role)
    if negotiation.current_offer_by is None or order_total(negotiation) is None:
        raise InvalidStateError("No active offer to accept")

    note = system_message(
        f"{actor.full_name} accepted the offer of "
        f"{_describe_terms(negotiation.current_offer_price_per_kg, negotiation.current_offer_quantity_kg)}.",
        now,
    )
    return append_message(replace(negotiation, status=NegotiationStatus.AGREED), note)


def decline_offer(negotiation: Negotiation, actor: User, now: Optional[datetime] = None) -> Negotiation:
    """
    Reject the live offer. Terms are cleared and the decliner stays pending,
    i.e. is now expected to come back with a counter-offer.
    """
    role = party_role(negotiation, actor)
    _require_open_for_offers(negotiation)
    _require_turn(negotiation, role)
    if negotiation.current_offer_by is None:
        raise InvalidStateError("No active offer to decline")

    updated = replace(
        negotiation,
        status=PENDING_FOR[role],
        current_offer_price_per_kg=None,
        current_offer_quantity_kg=None,
        current_offer_by=None,
    )
    note = system_message(f"{actor.full_name} declined the current offer.", now)
    return append_message(updated, note)


def place_order(negotiation: Negotiation, actor: User, now: Optional[datetime] = None) -> Negotiation:
    """Buyer converts an agreement into an order (terminal)"""
    if party_role(negotiation, actor) != UserRole.BUYER:
        raise ValidationError("Only the buyer can place an order")
    if negotiation.status != NegotiationStatus.AGREED:
        raise InvalidStateError(
            f"Negotiation {negotiation.id} is {negotiation.status.value}; an order requires AGREED"
        )

    price = negotiation.current_offer_price_per_kg
    quantity = negotiation.current_offer_quantity_kg
    note = system_message(
        f"Order placed by {actor.full_name} for {format_kg(quantity)} at {format_naira(price)}/kg. "
        f"Total: {format_naira(order_total(negotiation))}.",
        now,
    )
    return append_message(replace(negotiation, status=NegotiationStatus.ORDER_PLACED), note)


def cancel_negotiation(negotiation: Negotiation, actor: User, now: Optional[datetime] = None) -> Negotiation:
    """Either party walks away before an order is placed"""
    role = party_role(negotiation, actor)
    if is_terminal(negotiation):
        raise InvalidStateError(f"Negotiation {negotiation.id} is already {negotiation.status.value}")

    status = (
        NegotiationStatus.CANCELLED_BY_FARMER if role == UserRole.FARMER else NegotiationStatus.CANCELLED_BY_BUYER
    )
    note = system_message(f"{actor.full_name} cancelled the negotiation.", now)
    return append_message(replace(negotiation, status=status), note)


def withdraw_for_listing(negotiation: Negotiation, reason: str, now: Optional[datetime] = None) -> Negotiation:
    """Close an open negotiation on the farmer's side when its listing goes away"""
    if is_terminal(negotiation):
        return negotiation
    note = system_message(reason, now)
    return append_message(replace(negotiation, status=NegotiationStatus.CANCELLED_BY_FARMER), note)
