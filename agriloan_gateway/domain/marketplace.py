"""Produce listings and how negotiation progress moves their status"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from agriloan_gateway.domain.exceptions import InvalidStateError, ValidationError
from agriloan_gateway.domain.models import (
    CropType,
    ListingStatus,
    Negotiation,
    ProduceListing,
    QualityGrade,
    User,
    UserRole,
)
from agriloan_gateway.domain.negotiation import (
    cancel_negotiation,
    is_terminal,
    place_order,
    start_negotiation,
    withdraw_for_listing,
)
from agriloan_gateway.domain.validation import require_positive, require_role, resolve_other_crop
from agriloan_gateway.utils.date_utils import utcnow

MARKETABLE_STATUSES = frozenset({ListingStatus.AVAILABLE, ListingStatus.NEGOTIATING})


def create_listing(
    farmer: User,
    crop_type: CropType,
    quantity_kg: float,
    quality_grade: QualityGrade,
    price_per_kg: int,
    listed_at: Optional[datetime] = None,
    other_crop_type: Optional[str] = None,
    description: Optional[str] = None,
    photo_file_name: Optional[str] = None,
) -> ProduceListing:
    require_role(farmer, UserRole.FARMER, "list produce")
    require_positive("Quantity", quantity_kg)
    require_positive("Price per kg", price_per_kg)
    return ProduceListing(
        id=None,
        farmer_id=farmer.id,
        farmer_name=farmer.full_name,
        crop_type=crop_type,
        other_crop_type=resolve_other_crop(crop_type, other_crop_type),
        quantity_kg=quantity_kg,
        quality_grade=quality_grade,
        price_per_kg=price_per_kg,
        listing_date=listed_at or utcnow(),
        status=ListingStatus.AVAILABLE,
        description=description.strip() if description else None,
        photo_file_name=photo_file_name,
    )


def _open_others(negotiations: Iterable[Negotiation], exclude_id: Optional[str]) -> List[Negotiation]:
    return [n for n in negotiations if n.id != exclude_id and not is_terminal(n)]


def open_negotiation(
    listing: ProduceListing,
    buyer: User,
    existing: Iterable[Negotiation],
    now: Optional[datetime] = None,
) -> Tuple[Negotiation, ProduceListing, bool]:
    """Start (or resume) a negotiation; an AVAILABLE listing becomes NEGOTIATING"""
    negotiation, created = start_negotiation(listing, buyer, existing, now)
    if created and listing.status == ListingStatus.AVAILABLE:
        listing = replace(listing, status=ListingStatus.NEGOTIATING)
    return negotiation, listing, created


def complete_order(
    negotiation: Negotiation,
    listing: ProduceListing,
    listing_negotiations: Iterable[Negotiation],
    buyer: User,
    now: Optional[datetime] = None,
) -> Tuple[Negotiation, ProduceListing, List[Negotiation]]:
    """
    Place the order, mark the listing SOLD and withdraw every other open
    negotiation on it.

    Returns: (ordered negotiation, sold listing, withdrawn negotiations)
    """
    if listing.status not in MARKETABLE_STATUSES:
        raise InvalidStateError(f"Listing {listing.id} is {listing.status.value}")
    ordered = place_order(negotiation, buyer, now)
    withdrawn = [
        withdraw_for_listing(n, "This listing has been sold to another buyer.", now)
        for n in _open_others(listing_negotiations, negotiation.id)
    ]
    return ordered, replace(listing, status=ListingStatus.SOLD), withdrawn


def close_negotiation(
    negotiation: Negotiation,
    listing: ProduceListing,
    listing_negotiations: Iterable[Negotiation],
    actor: User,
    now: Optional[datetime] = None,
) -> Tuple[Negotiation, ProduceListing]:
    """Cancel a negotiation; the listing returns to AVAILABLE when nobody else is negotiating"""
    cancelled = cancel_negotiation(negotiation, actor, now)
    if listing.status == ListingStatus.NEGOTIATING and not _open_others(listing_negotiations, negotiation.id):
        listing = replace(listing, status=ListingStatus.AVAILABLE)
    return cancelled, listing


def cancel_listing(
    listing: ProduceListing,
    farmer: User,
    listing_negotiations: Iterable[Negotiation],
    now: Optional[datetime] = None,
) -> Tuple[ProduceListing, List[Negotiation]]:
    """Farmer takes an unsold listing off the market, withdrawing open negotiations"""
    if farmer.id != listing.farmer_id:
        raise ValidationError(f"Listing {listing.id} does not belong to {farmer.id}")
    if listing.status not in MARKETABLE_STATUSES:
        raise InvalidStateError(f"Listing {listing.id} is already {listing.status.value}")
    withdrawn = [
        withdraw_for_listing(n, f"{farmer.full_name} withdrew this listing.", now)
        for n in _open_others(listing_negotiations, None)
    ]
    return replace(listing, status=ListingStatus.CANCELLED), withdrawn
