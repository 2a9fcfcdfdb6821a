"""Tests for CommitmentLifecycleService (budget_modules/commitment/service.py)."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from budget_kernel.domain.entities import ApprovalStage, CommitmentStatus
from budget_kernel.domain.results import FailureKind
from tests.builders import budget_draft, commitment_draft


@pytest.fixture
def budget(make_active_budget):
    return make_active_budget("1000000")


class TestCreateCommitment:

    def test_creates_draft_with_budget_coa(self, ledger, budget, operator):
        commitment = ledger.commitments.create_commitment(
            commitment_draft(budget.id), operator,
        ).unwrap()
        assert commitment.status is CommitmentStatus.DRAFT
        assert commitment.coa == budget.coa
        assert commitment.fiscal_year == budget.fiscal_year
        assert commitment.unit_id == budget.unit_id

    def test_explicit_coa_kept(self, ledger, budget, operator):
        commitment = ledger.commitments.create_commitment(
            commitment_draft(budget.id, coa="5200"), operator,
        ).unwrap()
        assert commitment.coa == "5200"

    def test_exceeding_available_refused(self, ledger, budget, operator):
        result = ledger.commitments.create_commitment(
            commitment_draft(budget.id, "1000001"), operator,
        )
        assert result.failure.kind is FailureKind.CAPACITY_EXCEEDED
        assert result.failure.code == "EXCEEDS_AVAILABLE_BUDGET"
        assert ledger.commitments.commitments_for_budget(budget.id) == ()

    def test_exactly_available_allowed(self, ledger, budget, operator):
        assert ledger.commitments.create_commitment(
            commitment_draft(budget.id, "1000000"), operator,
        ).is_success

    def test_inactive_budget_refused(self, ledger, operator):
        draft_budget = ledger.budgets.create_budget(budget_draft(), operator).unwrap()
        result = ledger.commitments.create_commitment(
            commitment_draft(draft_budget.id), operator,
        )
        assert result.failure.code == "BUDGET_NOT_ACTIVE"

    def test_unknown_budget(self, ledger, operator):
        result = ledger.commitments.create_commitment(commitment_draft(uuid4()), operator)
        assert result.failure.code == "ENTITY_NOT_FOUND"

    def test_missing_spk_number(self, ledger, budget, operator):
        result = ledger.commitments.create_commitment(
            commitment_draft(budget.id, spk_number=""), operator,
        )
        assert result.failure.code == "MISSING_FIELD"

    def test_non_positive_amount(self, ledger, budget, operator):
        result = ledger.commitments.create_commitment(
            commitment_draft(budget.id, "0"), operator,
        )
        assert result.failure.kind is FailureKind.VALIDATION
        assert result.failure.code == "NON_POSITIVE_AMOUNT"

    def test_end_before_start_refused(self, ledger, budget, operator):
        result = ledger.commitments.create_commitment(
            commitment_draft(budget.id, start_date=date(2025, 6, 1), end_date=date(2025, 5, 1)),
            operator,
        )
        assert result.failure.code == "INVALID_DATE_RANGE"

    def test_admin_cannot_prepare(self, ledger, budget, admin):
        result = ledger.commitments.create_commitment(commitment_draft(budget.id), admin)
        assert result.failure.code == "UNAUTHORIZED_ACTOR"


class TestApprovalChain:

    def test_finance_approval_commits(self, ledger, budget, operator, supervisor, admin):
        commitment = ledger.commitments.create_commitment(
            commitment_draft(budget.id, "400000"), operator, submit=True,
        ).unwrap()
        assert ledger.get_budget_balance(budget.id).total_committed == Decimal("0")

        ledger.commitments.approve_commitment_by_unit(commitment.id, supervisor).unwrap()
        ledger.commitments.approve_commitment_by_finance(commitment.id, admin).unwrap()

        balance = ledger.get_budget_balance(budget.id)
        assert balance.total_committed == Decimal("400000")
        assert balance.available_budget == Decimal("600000")
        assert balance.remaining_after_commitments == Decimal("600000")

    def test_capacity_rechecked_at_finance_approval(
        self, ledger, budget, make_approved_commitment, operator, supervisor, admin,
    ):
        pending = ledger.commitments.create_commitment(
            commitment_draft(budget.id, "700000"), operator, submit=True,
        ).unwrap()
        ledger.commitments.approve_commitment_by_unit(pending.id, supervisor).unwrap()
        make_approved_commitment(budget.id, "500000", spk_number="SPK-002")

        result = ledger.commitments.approve_commitment_by_finance(pending.id, admin)
        assert result.failure.code == "EXCEEDS_AVAILABLE_BUDGET"
        assert (
            ledger.commitments.get_commitment(pending.id).status
            is CommitmentStatus.APPROVED_UNIT
        )

    def test_supervisor_scope(self, ledger, budget, operator, other_supervisor):
        commitment = ledger.commitments.create_commitment(
            commitment_draft(budget.id), operator, submit=True,
        ).unwrap()
        result = ledger.commitments.approve_commitment_by_unit(commitment.id, other_supervisor)
        assert result.failure.code == "OUT_OF_UNIT_SCOPE"

    def test_rejection(self, ledger, budget, operator, supervisor):
        commitment = ledger.commitments.create_commitment(
            commitment_draft(budget.id), operator, submit=True,
        ).unwrap()
        rejected = ledger.commitments.reject_commitment(
            commitment.id, supervisor, "Vendor not registered",
        ).unwrap()
        assert rejected.status is CommitmentStatus.REJECTED
        assert rejected.rejection.stage is ApprovalStage.UNIT


class TestCompletionAndCancellation:

    def test_completion_releases_capacity(
        self, ledger, budget, make_approved_commitment, admin,
    ):
        commitment = make_approved_commitment(budget.id, "400000")
        completed = ledger.commitments.complete_commitment(commitment.id, admin).unwrap()
        assert completed.status is CommitmentStatus.COMPLETED
        assert completed.completed_at is not None
        assert ledger.get_budget_balance(budget.id).available_budget == Decimal("1000000")

    def test_preparer_may_complete(self, ledger, budget, make_approved_commitment, operator):
        commitment = make_approved_commitment(budget.id)
        assert ledger.commitments.complete_commitment(commitment.id, operator).is_success

    def test_supervisor_cannot_complete(
        self, ledger, budget, make_approved_commitment, supervisor,
    ):
        commitment = make_approved_commitment(budget.id)
        result = ledger.commitments.complete_commitment(commitment.id, supervisor)
        assert result.failure.code == "UNAUTHORIZED_ACTOR"

    def test_draft_cancelled_by_preparer(self, ledger, budget, operator):
        commitment = ledger.commitments.create_commitment(
            commitment_draft(budget.id), operator,
        ).unwrap()
        cancelled = ledger.commitments.cancel_commitment(commitment.id, operator).unwrap()
        assert cancelled.status is CommitmentStatus.CANCELLED
        assert cancelled.cancelled_at is not None

    def test_finance_approved_cannot_be_cancelled(
        self, ledger, budget, make_approved_commitment, admin,
    ):
        commitment = make_approved_commitment(budget.id)
        result = ledger.commitments.cancel_commitment(commitment.id, admin)
        assert result.failure.code == "INVALID_TRANSITION"

    def test_completed_is_terminal(self, ledger, budget, make_approved_commitment, admin):
        commitment = make_approved_commitment(budget.id)
        ledger.commitments.complete_commitment(commitment.id, admin).unwrap()
        assert ledger.commitments.complete_commitment(commitment.id, admin).failure.code == (
            "INVALID_TRANSITION"
        )

    def test_capacity_refusal_logged_as_warning(self, ledger, budget, operator, captured_logs):
        ledger.commitments.create_commitment(commitment_draft(budget.id, "2000000"), operator)
        records = [r for r in captured_logs() if r["message"] == "commitment_operation_rejected"]
        assert records[-1]["level"] == "WARNING"
        assert records[-1]["failure_code"] == "EXCEEDS_AVAILABLE_BUDGET"
