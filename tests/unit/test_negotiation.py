"""Unit tests for the negotiation state machine"""

import pytest
from dataclasses import replace

from agriloan_gateway.domain.exceptions import InvalidStateError, ValidationError
from agriloan_gateway.domain.models import (
    SYSTEM_SENDER_ID,
    ListingStatus,
    NegotiationStatus,
    User,
    UserRole,
)
from agriloan_gateway.domain.negotiation import (
    accept_offer,
    cancel_negotiation,
    decline_offer,
    find_open,
    make_offer,
    order_total,
    place_order,
    start_negotiation,
)


class TestStart:
    def test_buyer_opens_and_farmer_acts_next(self, listing, buyer_user):
        negotiation, created = start_negotiation(listing, buyer_user, [])

        assert created is True
        assert negotiation.status == NegotiationStatus.PENDING_FARMER
        assert negotiation.current_offer_price_per_kg == 300
        assert negotiation.current_offer_quantity_kg == 500
        assert negotiation.current_offer_by is None
        assert negotiation.buyer_name == "Chidi Eze"
        assert negotiation.farmer_name == "Amina Bello"
        assert negotiation.messages[0].sender_id == SYSTEM_SENDER_ID
        assert negotiation.messages[0].text == "Chidi Eze started a negotiation for Maize."

    def test_reopening_returns_existing(self, listing, buyer_user, negotiation):
        again, created = start_negotiation(listing, buyer_user, [negotiation])

        assert created is False
        assert again is negotiation

    def test_closed_negotiation_is_not_reused(self, listing, buyer_user, negotiation):
        cancelled = replace(negotiation, status=NegotiationStatus.CANCELLED_BY_BUYER)

        fresh, created = start_negotiation(listing, buyer_user, [cancelled])

        assert created is True
        assert fresh.id is None

    def test_sold_listing_refused(self, listing, buyer_user):
        with pytest.raises(InvalidStateError):
            start_negotiation(replace(listing, status=ListingStatus.SOLD), buyer_user, [])

    def test_farmer_cannot_start(self, listing, farmer_user):
        with pytest.raises(ValidationError):
            start_negotiation(listing, farmer_user, [])

    def test_find_open_ignores_other_buyers(self, negotiation):
        assert find_open([negotiation], "listing-1", "buyer-1") is negotiation
        assert find_open([negotiation], "listing-1", "buyer-2") is None


class TestOffers:
    def test_buyer_counter_flips_to_farmer(self, negotiation, buyer_user):
        countered = make_offer(negotiation, buyer_user, 280, 150)

        assert countered.status == NegotiationStatus.PENDING_FARMER
        assert countered.current_offer_price_per_kg == 280
        assert countered.current_offer_quantity_kg == 150
        assert countered.current_offer_by == "buyer-1"
        assert countered.messages[-1].text == "Chidi Eze made an offer: ₦280/kg for 150kg."
        assert countered.messages[-1].is_system is True

    def test_farmer_counter_flips_to_buyer(self, negotiation, farmer_user):
        countered = make_offer(negotiation, farmer_user, 320, 500)

        assert countered.status == NegotiationStatus.PENDING_BUYER

    @pytest.mark.parametrize("price,quantity", [(0, 100), (280, 0), (-5, 100)])
    def test_terms_must_be_positive(self, negotiation, buyer_user, price, quantity):
        with pytest.raises(ValidationError):
            make_offer(negotiation, buyer_user, price, quantity)

    def test_quantity_capped_by_listing(self, negotiation, buyer_user):
        with pytest.raises(ValidationError, match="exceeds"):
            make_offer(negotiation, buyer_user, 280, 600, available_quantity_kg=500)

    def test_no_offers_after_agreement(self, negotiation, buyer_user, farmer_user):
        agreed = accept_offer(make_offer(negotiation, buyer_user, 280, 150), farmer_user)

        with pytest.raises(InvalidStateError):
            make_offer(agreed, buyer_user, 270, 150)

    def test_outsider_rejected(self, negotiation, other_buyer_user):
        with pytest.raises(ValidationError, match="not a party"):
            make_offer(negotiation, other_buyer_user, 280, 150)


class TestAcceptDecline:
    def test_accept_without_offer_fails(self, negotiation, farmer_user):
        with pytest.raises(InvalidStateError, match="No active offer"):
            accept_offer(negotiation, farmer_user)

    def test_cannot_accept_own_offer(self, negotiation, buyer_user):
        countered = make_offer(negotiation, buyer_user, 280, 150)

        with pytest.raises(InvalidStateError):
            accept_offer(countered, buyer_user)

    def test_accept_agrees(self, negotiation, buyer_user, farmer_user):
        agreed = accept_offer(make_offer(negotiation, buyer_user, 280, 150), farmer_user)

        assert agreed.status == NegotiationStatus.AGREED
        assert agreed.messages[-1].text == "Amina Bello accepted the offer of ₦280/kg for 150kg."

    def test_decline_clears_terms_and_decliner_owes_reply(self, negotiation, buyer_user, farmer_user):
        declined = decline_offer(make_offer(negotiation, buyer_user, 250, 150), farmer_user)

        assert declined.status == NegotiationStatus.PENDING_FARMER
        assert declined.current_offer_price_per_kg is None
        assert declined.current_offer_quantity_kg is None
        assert declined.current_offer_by is None
        assert order_total(declined) is None

        # the decliner follows up with a counter
        countered = make_offer(declined, farmer_user, 290, 150)
        assert countered.status == NegotiationStatus.PENDING_BUYER

    def test_decline_without_offer_fails(self, negotiation, farmer_user):
        with pytest.raises(InvalidStateError):
            decline_offer(negotiation, farmer_user)


class TestOrder:
    def _agreed(self, negotiation, buyer_user, farmer_user):
        return accept_offer(make_offer(negotiation, buyer_user, 280, 150), farmer_user)

    def test_order_records_total(self, negotiation, buyer_user, farmer_user):
        ordered = place_order(self._agreed(negotiation, buyer_user, farmer_user), buyer_user)

        assert ordered.status == NegotiationStatus.ORDER_PLACED
        assert order_total(ordered) == 42000
        assert ordered.messages[-1].text == (
            "Order placed by Chidi Eze for 150kg at ₦280/kg. Total: ₦42,000."
        )

    def test_only_buyer_orders(self, negotiation, buyer_user, farmer_user):
        with pytest.raises(ValidationError):
            place_order(self._agreed(negotiation, buyer_user, farmer_user), farmer_user)

    @pytest.mark.parametrize(
        "status",
        [NegotiationStatus.PENDING_BUYER, NegotiationStatus.PENDING_FARMER, NegotiationStatus.ORDER_PLACED],
    )
    def test_order_requires_agreed(self, negotiation, buyer_user, status):
        with pytest.raises(InvalidStateError):
            place_order(replace(negotiation, status=status), buyer_user)


class TestCancel:
    def test_side_recorded(self, negotiation, farmer_user, buyer_user):
        assert cancel_negotiation(negotiation, farmer_user).status == NegotiationStatus.CANCELLED_BY_FARMER
        assert cancel_negotiation(negotiation, buyer_user).status == NegotiationStatus.CANCELLED_BY_BUYER

    def test_agreed_can_still_be_cancelled(self, negotiation, buyer_user, farmer_user):
        agreed = accept_offer(make_offer(negotiation, buyer_user, 280, 150), farmer_user)

        assert cancel_negotiation(agreed, buyer_user).status == NegotiationStatus.CANCELLED_BY_BUYER

    def test_closed_stays_closed(self, negotiation, buyer_user):
        cancelled = cancel_negotiation(negotiation, buyer_user)

        with pytest.raises(InvalidStateError):
            cancel_negotiation(cancelled, buyer_user)
        with pytest.raises(InvalidStateError):
            make_offer(cancelled, buyer_user, 280, 150)

    def test_admin_is_not_a_party(self, negotiation):
        admin = User(id="admin-1", contact="a@example.com", role=UserRole.ADMIN, full_name="Admin")

        with pytest.raises(ValidationError):
            cancel_negotiation(negotiation, admin)
