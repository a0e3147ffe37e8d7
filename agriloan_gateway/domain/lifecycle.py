"""Loan lifecycle state machine - submission, admin review, bank decision, disbursement"""

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from agriloan_gateway.domain.exceptions import InvalidStateError, ValidationError
from agriloan_gateway.domain.models import (
    AdminAction,
    CropType,
    LoanApplication,
    LoanStatus,
    OfficerAction,
    User,
    UserRole,
)
from agriloan_gateway.domain.validation import (
    require_positive,
    require_role,
    require_text,
    resolve_other_crop,
)
from agriloan_gateway.utils.date_utils import days_until, utcnow

# Statuses in which the bank officer may approve, modify or reject
OFFICER_DECISION_STATUSES = frozenset(
    {LoanStatus.PENDING_BANK_APPROVAL, LoanStatus.APPROVED, LoanStatus.ACTIVE}
)

# Statuses the overdue sweep is allowed to move
SWEEPABLE_STATUSES = frozenset({LoanStatus.APPROVED, LoanStatus.ACTIVE})


def total_repaid(loan: LoanApplication) -> int:
    return sum(r.amount for r in loan.repayments)


def remaining_balance(loan: LoanApplication) -> int:
    """approved_amount minus everything repaid (0 while nothing is approved)"""
    return (loan.approved_amount or 0) - total_repaid(loan)


def effective_status(loan: LoanApplication, as_of: date) -> LoanStatus:
    """
    Status to display and filter on.

    A loan that is neither REPAID nor REJECTED, has a due date before as_of
    and still carries a balance reads as OVERDUE whatever its persisted
    status. Pure: never writes to the loan.
    """
    if loan.status in (LoanStatus.REPAID, LoanStatus.REJECTED):
        return loan.status
    if (
        loan.repayment_due_date is not None
        and loan.repayment_due_date < as_of
        and remaining_balance(loan) > 0
    ):
        return LoanStatus.OVERDUE
    return loan.status


def is_due_soon(loan: LoanApplication, as_of: date, window_days: int) -> bool:
    """Due date falls within the next window_days and a balance remains"""
    if loan.status == LoanStatus.REPAID or loan.repayment_due_date is None:
        return False
    remaining_days = days_until(loan.repayment_due_date, as_of)
    return 0 < remaining_days <= window_days and remaining_balance(loan) > 0


def submit_application(
    farmer: User,
    farm_size_acres: float,
    crop_type: CropType,
    input_needs: str,
    requested_amount: int,
    expected_harvest_date: Optional[date],
    other_crop_type: Optional[str] = None,
    applied_at: Optional[datetime] = None,
) -> LoanApplication:
    """Create a new application awaiting admin review"""
    require_role(farmer, UserRole.FARMER, "apply for a loan")
    require_positive("Requested amount", requested_amount)
    require_positive("Farm size", farm_size_acres)
    needs = require_text("Input needs", input_needs)
    if expected_harvest_date is None:
        raise ValidationError("Expected harvest date is required")

    return LoanApplication(
        id=None,
        farmer_id=farmer.id,
        farmer_name=farmer.full_name,
        farm_size_acres=farm_size_acres,
        crop_type=crop_type,
        other_crop_type=resolve_other_crop(crop_type, other_crop_type),
        input_needs=needs,
        requested_amount=requested_amount,
        application_date=applied_at or utcnow(),
        expected_harvest_date=expected_harvest_date,
        status=LoanStatus.PENDING_ADMIN_REVIEW,
    )


def record_admin_decision(
    loan: LoanApplication,
    reviewer: User,
    action: AdminAction,
    pre_approved_amount: Optional[int],
    comments: Optional[str],
    decided_at: Optional[datetime] = None,
) -> LoanApplication:
    """
    Admin forwards the application to the bank or rejects it.

    FORWARD needs a positive pre-approved amount; REJECT needs comments.
    """
    require_role(reviewer, UserRole.ADMIN, "review loan applications")
    if loan.status != LoanStatus.PENDING_ADMIN_REVIEW:
        raise InvalidStateError(
            f"Loan {loan.id} is {loan.status.value}; admin review requires PENDING_ADMIN_REVIEW"
        )

    comments = comments.strip() if comments else None
    review = dict(
        admin_reviewer_id=reviewer.id,
        admin_reviewer_name=reviewer.full_name,
        admin_review_date=decided_at or utcnow(),
        admin_comments=comments,
    )

    if action == AdminAction.FORWARD:
        require_positive("Pre-approved amount", pre_approved_amount)
        return replace(
            loan,
            status=LoanStatus.PENDING_BANK_APPROVAL,
            pre_approved_amount=pre_approved_amount,
            **review,
        )

    if not comments:
        raise ValidationError("Comments are required for rejection")
    return replace(loan, status=LoanStatus.REJECTED, **review)


def record_officer_decision(
    loan: LoanApplication,
    officer: User,
    action: OfficerAction,
    approved_amount: Optional[int],
    repayment_due_date: Optional[date],
    comments: Optional[str],
    as_of: date,
) -> LoanApplication:
    """
    Bank officer approves, modifies or rejects a forwarded application.

    APPROVE on an APPROVED/ACTIVE loan is a modification: amount and due
    date are revised and the status is kept. REJECT clears the approved
    terms and is refused once money has been repaid.
    """
    require_role(officer, UserRole.BANK_OFFICER, "decide on loans")
    if loan.status not in OFFICER_DECISION_STATUSES:
        raise InvalidStateError(
            f"Loan {loan.id} is {loan.status.value}; bank decision is not permitted"
        )

    decision = dict(
        officer_id=officer.id,
        officer_name=officer.full_name,
        officer_comments=comments.strip() if comments else None,
    )

    if action == OfficerAction.APPROVE:
        require_positive("Approved amount", approved_amount)
        if repayment_due_date is None:
            raise ValidationError("Repayment due date is required for approval")
        if repayment_due_date < as_of:
            raise ValidationError("Repayment due date cannot be in the past")
        repaid = total_repaid(loan)
        if repaid and approved_amount <= repaid:
            raise ValidationError(
                f"Approved amount must exceed the {repaid} already repaid"
            )
        status = LoanStatus.APPROVED if loan.status == LoanStatus.PENDING_BANK_APPROVAL else loan.status
        return replace(
            loan,
            status=status,
            approved_amount=approved_amount,
            repayment_due_date=repayment_due_date,
            **decision,
        )

    if loan.repayments:
        raise InvalidStateError(f"Loan {loan.id} has repayments and cannot be rejected")
    return replace(
        loan,
        status=LoanStatus.REJECTED,
        approved_amount=None,
        repayment_due_date=None,
        **decision,
    )


def disburse(loan: LoanApplication, officer: User, as_of: date) -> LoanApplication:
    """Mark an approved loan as paid out to the farmer"""
    require_role(officer, UserRole.BANK_OFFICER, "disburse loans")
    if loan.status != LoanStatus.APPROVED:
        raise InvalidStateError(
            f"Loan {loan.id} is {loan.status.value}; only APPROVED loans can be disbursed"
        )
    return replace(loan, status=LoanStatus.ACTIVE, disbursement_date=as_of)


def sweep_overdue(loan: LoanApplication, as_of: date) -> Optional[LoanApplication]:
    """
    Background overdue transition.

    Only ever moves APPROVED/ACTIVE to OVERDUE, and only when the derived
    status already says so. Returns None when there is nothing to persist.
    """
    if loan.status not in SWEEPABLE_STATUSES:
        return None
    if effective_status(loan, as_of) != LoanStatus.OVERDUE:
        return None
    return replace(loan, status=LoanStatus.OVERDUE)
