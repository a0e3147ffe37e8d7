"""Unit tests for the loan lifecycle state machine"""

import pytest
from dataclasses import replace
from datetime import date

from agriloan_gateway.domain.exceptions import InvalidStateError, ValidationError
from agriloan_gateway.domain.lifecycle import (
    disburse,
    effective_status,
    is_due_soon,
    record_admin_decision,
    record_officer_decision,
    remaining_balance,
    submit_application,
    sweep_overdue,
)
from agriloan_gateway.domain.models import (
    AdminAction,
    CropType,
    LoanStatus,
    OfficerAction,
    Repayment,
)

TODAY = date(2024, 3, 1)


def _submitted(farmer_user):
    return replace(
        submit_application(
            farmer_user,
            farm_size_acres=2.5,
            crop_type=CropType.MAIZE,
            input_needs="Seeds and fertilizer",
            requested_amount=60000,
            expected_harvest_date=date(2024, 7, 15),
        ),
        id="loan-1",
    )


class TestSubmission:
    def test_new_application_waits_for_admin(self, farmer_user):
        loan = _submitted(farmer_user)

        assert loan.status == LoanStatus.PENDING_ADMIN_REVIEW
        assert loan.farmer_name == "Amina Bello"
        assert loan.repayments == []
        assert loan.approved_amount is None

    @pytest.mark.parametrize("amount", [0, -500, None])
    def test_requested_amount_must_be_positive(self, farmer_user, amount):
        with pytest.raises(ValidationError):
            submit_application(farmer_user, 2.0, CropType.RICE, "Seeds", amount, date(2024, 7, 1))

    def test_other_crop_requires_name(self, farmer_user):
        with pytest.raises(ValidationError, match="Other"):
            submit_application(farmer_user, 2.0, CropType.OTHER, "Seeds", 10000, date(2024, 7, 1))

        loan = submit_application(
            farmer_user, 2.0, CropType.OTHER, "Seeds", 10000, date(2024, 7, 1), other_crop_type=" Millet "
        )
        assert loan.other_crop_type == "Millet"

    def test_only_farmers_apply(self, buyer_user):
        with pytest.raises(ValidationError):
            submit_application(buyer_user, 2.0, CropType.RICE, "Seeds", 10000, date(2024, 7, 1))

    def test_blank_input_needs_rejected(self, farmer_user):
        with pytest.raises(ValidationError):
            submit_application(farmer_user, 2.0, CropType.RICE, "   ", 10000, date(2024, 7, 1))


class TestAdminReview:
    def test_forward_sets_pre_approved_amount(self, farmer_user, admin_user):
        loan = record_admin_decision(_submitted(farmer_user), admin_user, AdminAction.FORWARD, 55000, None)

        assert loan.status == LoanStatus.PENDING_BANK_APPROVAL
        assert loan.pre_approved_amount == 55000
        assert loan.admin_reviewer_id == "admin-1"
        assert loan.admin_reviewer_name == "Tunde Admin"
        assert loan.admin_review_date is not None

    def test_forward_without_amount_fails(self, farmer_user, admin_user):
        with pytest.raises(ValidationError):
            record_admin_decision(_submitted(farmer_user), admin_user, AdminAction.FORWARD, 0, "ok")

    def test_reject_requires_comments(self, farmer_user, admin_user):
        with pytest.raises(ValidationError, match="Comments"):
            record_admin_decision(_submitted(farmer_user), admin_user, AdminAction.REJECT, None, "  ")

        loan = record_admin_decision(
            _submitted(farmer_user), admin_user, AdminAction.REJECT, None, "Farm size unverifiable"
        )
        assert loan.status == LoanStatus.REJECTED
        assert loan.admin_comments == "Farm size unverifiable"

    def test_review_only_once(self, farmer_user, admin_user):
        forwarded = record_admin_decision(_submitted(farmer_user), admin_user, AdminAction.FORWARD, 55000, None)

        with pytest.raises(InvalidStateError):
            record_admin_decision(forwarded, admin_user, AdminAction.REJECT, None, "Changed my mind")

    def test_officer_cannot_do_admin_review(self, farmer_user, officer_user):
        with pytest.raises(ValidationError):
            record_admin_decision(_submitted(farmer_user), officer_user, AdminAction.FORWARD, 55000, None)


class TestOfficerDecision:
    def _forwarded(self, farmer_user, admin_user):
        return record_admin_decision(_submitted(farmer_user), admin_user, AdminAction.FORWARD, 55000, None)

    def test_approve(self, farmer_user, admin_user, officer_user):
        loan = record_officer_decision(
            self._forwarded(farmer_user, admin_user),
            officer_user,
            OfficerAction.APPROVE,
            50000,
            date(2024, 3, 31),
            "Approved at reduced amount",
            as_of=TODAY,
        )

        assert loan.status == LoanStatus.APPROVED
        assert loan.approved_amount == 50000
        assert loan.repayment_due_date == date(2024, 3, 31)
        assert loan.officer_name == "Ngozi Okafor"
        assert remaining_balance(loan) == 50000

    def test_approve_needs_future_due_date(self, farmer_user, admin_user, officer_user):
        forwarded = self._forwarded(farmer_user, admin_user)

        with pytest.raises(ValidationError):
            record_officer_decision(forwarded, officer_user, OfficerAction.APPROVE, 50000, None, None, TODAY)
        with pytest.raises(ValidationError, match="past"):
            record_officer_decision(
                forwarded, officer_user, OfficerAction.APPROVE, 50000, date(2024, 2, 1), None, TODAY
            )

    def test_cannot_decide_before_admin_review(self, farmer_user, officer_user):
        with pytest.raises(InvalidStateError):
            record_officer_decision(
                _submitted(farmer_user), officer_user, OfficerAction.APPROVE, 50000, date(2024, 4, 1), None, TODAY
            )

    def test_modification_keeps_status(self, approved_loan, officer_user):
        active = replace(approved_loan, status=LoanStatus.ACTIVE)

        modified = record_officer_decision(
            active, officer_user, OfficerAction.APPROVE, 70000, date(2024, 5, 31), "Top-up", TODAY
        )

        assert modified.status == LoanStatus.ACTIVE
        assert modified.approved_amount == 70000
        assert modified.repayment_due_date == date(2024, 5, 31)

    def test_modification_cannot_undercut_repayments(self, approved_loan, officer_user):
        paid = replace(approved_loan, repayments=[Repayment(id="r1", paid_on=TODAY, amount=20000)])

        with pytest.raises(ValidationError):
            record_officer_decision(paid, officer_user, OfficerAction.APPROVE, 20000, date(2024, 4, 30), None, TODAY)

    def test_reject_clears_terms(self, farmer_user, admin_user, officer_user):
        loan = record_officer_decision(
            self._forwarded(farmer_user, admin_user),
            officer_user,
            OfficerAction.REJECT,
            None,
            None,
            "Insufficient collateral",
            TODAY,
        )

        assert loan.status == LoanStatus.REJECTED
        assert loan.approved_amount is None
        assert loan.officer_comments == "Insufficient collateral"

    def test_reject_refused_after_repayment(self, approved_loan, officer_user):
        paid = replace(approved_loan, repayments=[Repayment(id="r1", paid_on=TODAY, amount=1000)])

        with pytest.raises(InvalidStateError):
            record_officer_decision(paid, officer_user, OfficerAction.REJECT, None, None, "No", TODAY)

    @pytest.mark.parametrize("status", [LoanStatus.REJECTED, LoanStatus.REPAID, LoanStatus.OVERDUE])
    def test_terminal_and_overdue_loans_are_frozen(self, approved_loan, officer_user, status):
        with pytest.raises(InvalidStateError):
            record_officer_decision(
                replace(approved_loan, status=status),
                officer_user,
                OfficerAction.APPROVE,
                60000,
                date(2024, 5, 1),
                None,
                TODAY,
            )


class TestDisbursement:
    def test_approved_becomes_active(self, approved_loan, officer_user):
        loan = disburse(approved_loan, officer_user, TODAY)

        assert loan.status == LoanStatus.ACTIVE
        assert loan.disbursement_date == TODAY

    def test_only_approved_loans(self, approved_loan, officer_user):
        active = disburse(approved_loan, officer_user, TODAY)

        with pytest.raises(InvalidStateError):
            disburse(active, officer_user, TODAY)


class TestDerivedStatus:
    def test_past_due_with_balance_reads_overdue(self, approved_loan):
        assert effective_status(approved_loan, date(2024, 3, 31)) == LoanStatus.APPROVED
        assert effective_status(approved_loan, date(2024, 4, 1)) == LoanStatus.OVERDUE
        # persisted status is untouched
        assert approved_loan.status == LoanStatus.APPROVED

    def test_repaid_and_rejected_never_overdue(self, approved_loan):
        late = date(2024, 6, 1)

        assert effective_status(replace(approved_loan, status=LoanStatus.REPAID), late) == LoanStatus.REPAID
        assert effective_status(replace(approved_loan, status=LoanStatus.REJECTED), late) == LoanStatus.REJECTED

    def test_pending_loans_have_no_due_date(self, farmer_user):
        assert effective_status(_submitted(farmer_user), date(2030, 1, 1)) == LoanStatus.PENDING_ADMIN_REVIEW

    def test_due_soon_window(self, approved_loan):
        assert is_due_soon(approved_loan, date(2024, 3, 25), 7) is True
        assert is_due_soon(approved_loan, date(2024, 3, 10), 7) is False
        assert is_due_soon(approved_loan, date(2024, 3, 31), 7) is False


class TestOverdueSweep:
    def test_moves_past_due_loan(self, approved_loan):
        swept = sweep_overdue(approved_loan, date(2024, 4, 2))

        assert swept.status == LoanStatus.OVERDUE

    def test_nothing_to_do_before_due_date(self, approved_loan):
        assert sweep_overdue(approved_loan, date(2024, 3, 15)) is None

    def test_never_touches_repaid_loans(self, approved_loan):
        repaid = replace(
            approved_loan,
            status=LoanStatus.REPAID,
            repayments=[Repayment(id="r1", paid_on=TODAY, amount=50000)],
        )

        assert sweep_overdue(repaid, date(2024, 6, 1)) is None
