"""Field activity logs and the advisory prompt built from them"""

from datetime import date
from typing import Optional

from agriloan_gateway.domain.exceptions import ValidationError
from agriloan_gateway.domain.models import (
    FieldLog,
    FieldLogActivity,
    LoanApplication,
    LoanStatus,
    User,
    UserRole,
)
from agriloan_gateway.domain.validation import require_role, require_text
from agriloan_gateway.utils.date_utils import utcnow

# A log can only be attached to a loan that is funding the current season
LINKABLE_LOAN_STATUSES = frozenset({LoanStatus.APPROVED, LoanStatus.ACTIVE})


def record_field_log(
    farmer: User,
    crop_plot_id: str,
    log_date: date,
    activity: FieldLogActivity,
    notes: str,
    loan: Optional[LoanApplication] = None,
    estimated_yield_kg: Optional[float] = None,
    photo_file_name: Optional[str] = None,
) -> FieldLog:
    require_role(farmer, UserRole.FARMER, "keep field logs")
    plot = require_text("Plot/crop id", crop_plot_id)
    body = require_text("Notes", notes)
    if log_date is None:
        raise ValidationError("Log date is required")
    if estimated_yield_kg is not None and estimated_yield_kg < 0:
        raise ValidationError("Estimated yield cannot be negative")

    if loan is not None:
        if loan.farmer_id != farmer.id:
            raise ValidationError(f"Loan {loan.id} does not belong to {farmer.id}")
        if loan.status not in LINKABLE_LOAN_STATUSES:
            raise ValidationError(f"Loan {loan.id} is {loan.status.value}; only approved or active loans can be linked")

    return FieldLog(
        id=None,
        farmer_id=farmer.id,
        loan_id=loan.id if loan else None,
        crop_plot_id=plot,
        log_date=log_date,
        activity=activity,
        notes=body,
        estimated_yield_kg=estimated_yield_kg,
        photo_file_name=photo_file_name,
        created_at=utcnow(),
    )


def build_advice_prompt(log: FieldLog, loan: Optional[LoanApplication] = None) -> str:
    """Compose the question sent to the advice service for one log entry"""
    lines = [
        f"Based on your field log entry for '{log.crop_plot_id}':",
        f"Activity: {log.activity.value} on {log.log_date.strftime('%d %b %Y')}.",
        f'Your Notes: "{log.notes}"',
    ]
    if loan is not None:
        crop = loan.crop_type.value
        if loan.other_crop_type:
            crop = f"{crop} ({loan.other_crop_type})"
        lines.append(f"This plot is likely for {crop}.")
    if log.estimated_yield_kg is not None:
        lines.append(f"You estimated a yield of {log.estimated_yield_kg:g} kg.")
    lines.append("")
    lines.append("What specific advice or next steps would you recommend for this situation?")
    return "\n".join(lines)
