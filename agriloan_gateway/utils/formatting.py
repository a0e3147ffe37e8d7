"""Human-readable formatting for system messages"""

from agriloan_gateway.config import settings


def format_naira(amount: float) -> str:
    """Whole-naira amount with thousands separators, e.g. 42000 -> ₦42,000"""
    return f"{settings.currency_symbol}{amount:,.0f}"


def format_kg(quantity_kg: float) -> str:
    """Drop the trailing .0 for whole kilograms"""
    if float(quantity_kg).is_integer():
        return f"{int(quantity_kg)}kg"
    return f"{quantity_kg:g}kg"
