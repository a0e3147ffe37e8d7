"""Repayment ledger - append-only payments and balance-driven status transitions"""

from dataclasses import replace
from datetime import date
from typing import Iterable, Optional

from agriloan_gateway.domain.exceptions import InvalidStateError, ValidationError
from agriloan_gateway.domain.lifecycle import effective_status, remaining_balance, total_repaid
from agriloan_gateway.domain.models import LoanApplication, LoanStatus, PortfolioSummary, Repayment

# Statuses that accept repayments
REPAYABLE_STATUSES = frozenset({LoanStatus.APPROVED, LoanStatus.ACTIVE, LoanStatus.OVERDUE})

# Statuses whose approved amount has gone out to the farmer
DISBURSED_STATUSES = REPAYABLE_STATUSES | {LoanStatus.REPAID}


def record_repayment(
    loan: LoanApplication,
    amount: int,
    paid_on: date,
    recorded_by: Optional[str] = None,
) -> LoanApplication:
    """
    Append a repayment and advance the persisted status.

    Requirements:
    - amount > 0 and not above the remaining balance (rejected, never clamped)
    - balance reaching zero sets REPAID (terminal)
    - otherwise a payment dated after the due date sets OVERDUE

    Not idempotent: every call appends a new record.
    """
    if loan.status not in REPAYABLE_STATUSES:
        raise InvalidStateError(
            f"Loan {loan.id} is {loan.status.value}; repayments are not accepted"
        )
    if amount is None or amount <= 0:
        raise ValidationError("Repayment amount must be a positive number")
    if paid_on is None:
        raise ValidationError("Repayment date is required")

    balance = remaining_balance(loan)
    if amount > balance:
        raise ValidationError(
            f"Repayment amount {amount} cannot exceed remaining balance of {balance}"
        )

    repayment = Repayment(id=None, paid_on=paid_on, amount=amount, recorded_by=recorded_by)
    updated = replace(loan, repayments=[*loan.repayments, repayment])

    if total_repaid(updated) >= loan.approved_amount:
        return replace(updated, status=LoanStatus.REPAID)
    if loan.repayment_due_date is not None and paid_on > loan.repayment_due_date:
        return replace(updated, status=LoanStatus.OVERDUE)
    return updated


def summarize_portfolio(loans: Iterable[LoanApplication], as_of: date) -> PortfolioSummary:
    """
    Bank dashboard statistics.

    Disbursed value counts every approved loan that has not been rejected,
    repaid and overdue ones included, so recovery rate stays within 0-100%.
    Overdue figures use the derived status so they agree with every other
    read path.
    """
    loans = list(loans)
    by_status = {status: 0 for status in LoanStatus}
    for loan in loans:
        by_status[loan.status] += 1

    outstanding = [l for l in loans if l.status in (LoanStatus.APPROVED, LoanStatus.ACTIVE)]
    total_disbursed = sum(l.approved_amount or 0 for l in loans if l.status in DISBURSED_STATUSES)
    repaid_value = sum(total_repaid(l) for l in loans)
    recovery_rate = (repaid_value / total_disbursed) * 100 if total_disbursed > 0 else 0.0

    overdue = [l for l in loans if effective_status(l, as_of) == LoanStatus.OVERDUE]

    return PortfolioSummary(
        total_applications=len(loans),
        pending_admin_review=by_status[LoanStatus.PENDING_ADMIN_REVIEW],
        pending_bank_approval=by_status[LoanStatus.PENDING_BANK_APPROVAL],
        approved=len(outstanding),
        rejected=by_status[LoanStatus.REJECTED],
        repaid=by_status[LoanStatus.REPAID],
        total_disbursed=total_disbursed,
        total_repaid=repaid_value,
        recovery_rate=round(recovery_rate, 2),
        overdue_count=len(overdue),
        overdue_amount=sum(remaining_balance(l) for l in overdue),
    )
