"""User registration and profile edits"""

from dataclasses import replace
from datetime import datetime
from typing import Optional

from agriloan_gateway.domain.models import User, UserRole
from agriloan_gateway.domain.validation import require_text
from agriloan_gateway.utils.date_utils import utcnow


def register_user(
    contact: str,
    role: UserRole,
    full_name: str,
    entity_name: Optional[str] = None,
    registered_at: Optional[datetime] = None,
) -> User:
    return User(
        id=None,
        contact=require_text("Email or phone", contact).lower(),
        role=role,
        full_name=require_text("Full name", full_name),
        entity_name=entity_name.strip() if entity_name else None,
        created_at=registered_at or utcnow(),
    )


def update_profile(user: User, full_name: Optional[str] = None, entity_name: Optional[str] = None) -> User:
    """
    Change display details. Role is immutable, and names already copied onto
    loans, listings and negotiations keep their old value.
    """
    return replace(
        user,
        full_name=require_text("Full name", full_name) if full_name is not None else user.full_name,
        entity_name=(entity_name.strip() or None) if entity_name is not None else user.entity_name,
    )
