"""Shared input checks raising ValidationError"""

from typing import Optional

from agriloan_gateway.domain.exceptions import ValidationError
from agriloan_gateway.domain.models import CropType, User, UserRole


def require_positive(name: str, value: Optional[float]) -> None:
    if value is None or value <= 0:
        raise ValidationError(f"{name} must be a positive number")


def require_text(name: str, value: Optional[str]) -> str:
    """Return the stripped text, rejecting None and blanks"""
    if value is None or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


def require_role(actor: User, role: UserRole, action: str) -> None:
    if actor.role != role:
        raise ValidationError(f"Only a {role.value} can {action}; {actor.id} is {actor.role.value}")


def resolve_other_crop(crop_type: CropType, other_crop_type: Optional[str]) -> Optional[str]:
    """Free-text crop name is mandatory for OTHER and discarded otherwise"""
    if crop_type == CropType.OTHER:
        if other_crop_type is None or not other_crop_type.strip():
            raise ValidationError('Please specify the crop type when "Other" is selected')
        return other_crop_type.strip()
    return None
