"""Loan lifecycle endpoints - application, admin review, bank decision, disbursement, repayments"""

import logging
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from agriloan_gateway.api.v1.schemas import (
    AdminDecisionRequest,
    DisbursementRequest,
    LoanApplicationRequest,
    LoanListResponse,
    LoanResponse,
    OfficerDecisionRequest,
    PortfolioResponse,
    RepaymentRequest,
    RepaymentResponse,
    SweepResponse,
)
from agriloan_gateway.api.dependencies import get_request_id, get_today
from agriloan_gateway.config import settings
from agriloan_gateway.infrastructure.database.session import get_db
from agriloan_gateway.infrastructure.database.repositories import LoanRepository, UserRepository
from agriloan_gateway.domain.exceptions import InvalidStateError, NotFoundError, ValidationError
from agriloan_gateway.domain.ledger import record_repayment, summarize_portfolio
from agriloan_gateway.domain.lifecycle import (
    SWEEPABLE_STATUSES,
    disburse,
    effective_status,
    is_due_soon,
    record_admin_decision,
    record_officer_decision,
    remaining_balance,
    submit_application,
    sweep_overdue,
    total_repaid,
)
from agriloan_gateway.domain.models import LoanApplication, LoanStatus
from agriloan_gateway.infrastructure.observability.metrics import (
    overdue_sweep_counter,
    record_loan_transition,
    record_repayment as record_repayment_metrics,
)
from agriloan_gateway.infrastructure.observability.logging import log_loan_transition, log_repayment

router = APIRouter()


def loan_response(loan: LoanApplication, today: date) -> LoanResponse:
    """Attach the derived figures every read path must agree on"""
    return LoanResponse(
        **asdict(loan),
        effective_status=effective_status(loan, today),
        total_repaid=total_repaid(loan),
        remaining_balance=remaining_balance(loan),
        due_soon=is_due_soon(loan, today, settings.due_soon_window_days),
    )


def _track(request: Request, before: LoanApplication, after: LoanApplication, actor_id: str, step: str) -> None:
    record_loan_transition(before.status.value, after.status.value)
    log_loan_transition(
        get_request_id(request), after.id, actor_id, before.status.value, after.status.value, step
    )


@router.post("/loans", response_model=LoanResponse, status_code=201)
def submit_loan(
    request_body: LoanApplicationRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Farmer submits an application; it waits for admin review"""
    farmer = UserRepository(db).get(request_body.farmer_id)
    loan = submit_application(
        farmer,
        farm_size_acres=request_body.farm_size_acres,
        crop_type=request_body.crop_type,
        input_needs=request_body.input_needs,
        requested_amount=request_body.requested_amount,
        expected_harvest_date=request_body.expected_harvest_date,
        other_crop_type=request_body.other_crop_type,
    )
    saved = LoanRepository(db).add(loan)
    db.commit()

    record_loan_transition("NEW", saved.status.value)
    log_loan_transition(get_request_id(request), saved.id, farmer.id, "NEW", saved.status.value, "submitted")
    return loan_response(saved, today)


@router.get("/loans", response_model=LoanListResponse)
def list_loans(
    farmer_id: Optional[str] = Query(None, description="Only this farmer's loans"),
    status: Optional[LoanStatus] = Query(None, description="Filter on derived status (OVERDUE included)"),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    repo = LoanRepository(db)
    loans = repo.list_by_farmer(farmer_id) if farmer_id else repo.list_all()
    if status is not None:
        loans = [l for l in loans if effective_status(l, today) == status]
    return LoanListResponse(loans=[loan_response(l, today) for l in loans])


@router.get("/loans/portfolio", response_model=PortfolioResponse)
def get_portfolio(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Bank dashboard statistics across all loans"""
    summary = summarize_portfolio(LoanRepository(db).list_all(), today)
    return PortfolioResponse(as_of=today, **asdict(summary))


@router.post("/loans/overdue-sweep", response_model=SweepResponse)
def run_overdue_sweep(
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Persist OVERDUE for approved/active loans past their due date.

    Each candidate is re-read under a row lock, so a repayment that cleared
    the balance first is never overwritten.
    """
    repo = LoanRepository(db)
    swept = []
    for candidate in repo.list_by_status(SWEEPABLE_STATUSES):
        loan = repo.get_for_update(candidate.id)
        overdue = sweep_overdue(loan, today)
        if overdue is None:
            continue
        repo.save(overdue)
        swept.append(loan.id)
        overdue_sweep_counter.inc()
        _track(request, loan, overdue, "system", "overdue_sweep")
    db.commit()
    return SweepResponse(as_of=today, swept_loan_ids=swept)


@router.get("/loans/{loan_id}", response_model=LoanResponse)
def get_loan(loan_id: str, db: Session = Depends(get_db), today: date = Depends(get_today)):
    return loan_response(LoanRepository(db).get(loan_id), today)


@router.post("/loans/{loan_id}/admin-decision", response_model=LoanResponse)
def admin_decision(
    loan_id: str,
    request_body: AdminDecisionRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Admin forwards the application to the bank with a pre-approved amount, or rejects it"""
    reviewer = UserRepository(db).get(request_body.reviewer_id)
    repo = LoanRepository(db)
    loan = repo.get_for_update(loan_id)
    decided = record_admin_decision(
        loan,
        reviewer,
        request_body.action,
        request_body.pre_approved_amount,
        request_body.comments,
    )
    saved = repo.save(decided)
    db.commit()

    _track(request, loan, saved, reviewer.id, f"admin_{request_body.action.value.lower()}")
    return loan_response(saved, today)


@router.post("/loans/{loan_id}/officer-decision", response_model=LoanResponse)
def officer_decision(
    loan_id: str,
    request_body: OfficerDecisionRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Bank officer approves, modifies an approval, or rejects"""
    officer = UserRepository(db).get(request_body.officer_id)
    repo = LoanRepository(db)
    loan = repo.get_for_update(loan_id)
    decided = record_officer_decision(
        loan,
        officer,
        request_body.action,
        request_body.approved_amount,
        request_body.repayment_due_date,
        request_body.comments,
        as_of=today,
    )
    saved = repo.save(decided)
    db.commit()

    _track(request, loan, saved, officer.id, f"officer_{request_body.action.value.lower()}")
    return loan_response(saved, today)


@router.post("/loans/{loan_id}/disburse", response_model=LoanResponse)
def disburse_loan(
    loan_id: str,
    request_body: DisbursementRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    officer = UserRepository(db).get(request_body.officer_id)
    repo = LoanRepository(db)
    loan = repo.get_for_update(loan_id)
    saved = repo.save(disburse(loan, officer, today))
    db.commit()

    _track(request, loan, saved, officer.id, "disbursed")
    return loan_response(saved, today)


@router.post("/loans/{loan_id}/repayments", response_model=RepaymentResponse, status_code=201)
def create_repayment(
    loan_id: str,
    request_body: RepaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Record a repayment against a loan.

    Flow:
    1. Load the loan under a row lock
    2. Append to the ledger (rejects amounts above the remaining balance)
    3. Persist and commit; REPAID/OVERDUE follow from the new balance
    4. Return the new ledger entry

    Not idempotent: callers must not blindly retry an ambiguous failure.
    """
    request_id = get_request_id(request)

    try:
        repo = LoanRepository(db)
        loan = repo.get_for_update(loan_id)
        updated = record_repayment(
            loan,
            request_body.amount,
            request_body.paid_on or today,
            recorded_by=request_body.user_id,
        )
        saved = repo.save(updated)
        db.commit()

    except NotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except ValidationError as e:
        db.rollback()
        logging.warning(f"Repayment rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except (InvalidStateError, StaleDataError) as e:
        db.rollback()
        logging.warning(f"Repayment refused: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Ledger failure: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Ledger failure")

    repayment = saved.repayments[-1]
    balance = remaining_balance(saved)
    record_repayment_metrics(repayment.amount)
    if saved.status != loan.status:
        _track(request, loan, saved, request_body.user_id, "repayment")
    log_repayment(request_id, saved.id, repayment.amount, balance, saved.status.value, request_body.user_id)

    return RepaymentResponse(
        **asdict(repayment),
        loan_id=saved.id,
        loan_status=saved.status,
        remaining_balance=balance,
    )
