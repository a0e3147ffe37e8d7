"""Negotiation message log - user messages and system transition notes"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from agriloan_gateway.domain.exceptions import InvalidStateError, ValidationError
from agriloan_gateway.domain.models import (
    SYSTEM_SENDER_ID,
    SYSTEM_SENDER_ROLE,
    ChatMessage,
    Negotiation,
    NegotiationStatus,
    User,
    UserRole,
)
from agriloan_gateway.domain.validation import require_text
from agriloan_gateway.utils.date_utils import utcnow

CLOSED_STATUSES = frozenset(
    {
        NegotiationStatus.ORDER_PLACED,
        NegotiationStatus.CANCELLED_BY_FARMER,
        NegotiationStatus.CANCELLED_BY_BUYER,
    }
)


def system_message(text: str, at: Optional[datetime] = None) -> ChatMessage:
    return ChatMessage(
        id=None,
        sender_id=SYSTEM_SENDER_ID,
        sender_role=SYSTEM_SENDER_ROLE,
        text=text,
        timestamp=at or utcnow(),
        is_system=True,
    )


def append_message(negotiation: Negotiation, message: ChatMessage) -> Negotiation:
    """Add to the end of the transcript and refresh last_update"""
    return replace(
        negotiation,
        messages=[*negotiation.messages, message],
        last_update=message.timestamp,
    )


def post_message(
    negotiation: Negotiation,
    sender: User,
    text: str,
    now: Optional[datetime] = None,
) -> Negotiation:
    """
    A negotiating party posts a chat message. Status is unchanged.

    Closed negotiations accept no messages; once AGREED only the buyer may
    write until the order is placed.
    """
    if sender.id not in (negotiation.farmer_id, negotiation.buyer_id):
        raise ValidationError(f"User {sender.id} is not a party to negotiation {negotiation.id}")
    body = require_text("Message text", text)

    if negotiation.status in CLOSED_STATUSES:
        raise InvalidStateError(f"Negotiation {negotiation.id} is {negotiation.status.value}")
    if negotiation.status == NegotiationStatus.AGREED and sender.id != negotiation.buyer_id:
        raise InvalidStateError("Only the buyer can message after agreement")

    role = UserRole.FARMER if sender.id == negotiation.farmer_id else UserRole.BUYER
    message = ChatMessage(
        id=None,
        sender_id=sender.id,
        sender_role=role.value,
        text=body,
        timestamp=now or utcnow(),
    )
    return append_message(negotiation, message)
