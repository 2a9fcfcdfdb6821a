"""Tests for ActualLifecycleService (budget_modules/actual/service.py)."""

from decimal import Decimal
from uuid import uuid4

import pytest

from budget_config.schema import LedgerConfig
from budget_kernel.domain.entities import ActualStatus, ApprovalStage, BudgetType
from budget_kernel.domain.results import FailureKind
from budget_services.ledger import BudgetLedger
from tests.builders import actual_draft, budget_draft, commitment_draft


@pytest.fixture
def budget(make_active_budget):
    return make_active_budget("1000000")


@pytest.fixture
def commitment(budget, make_approved_commitment):
    return make_approved_commitment(budget.id, "400000")


class TestCreateActual:

    def test_direct_payment_on_routine_budget(self, ledger, budget, operator):
        actual = ledger.actuals.create_actual(actual_draft(budget.id, "100000"), operator).unwrap()
        assert actual.status is ActualStatus.DRAFT
        assert actual.commitment_id is None
        assert ledger.actuals.actuals_for_budget(budget.id) == (actual,)

    def test_direct_payment_capped_by_available(self, ledger, budget, commitment, operator):
        result = ledger.actuals.create_actual(actual_draft(budget.id, "600001"), operator)
        assert result.failure.kind is FailureKind.CAPACITY_EXCEEDED
        assert result.failure.code == "EXCEEDS_AVAILABLE_BUDGET"

    def test_payment_capped_by_commitment_remaining(self, ledger, budget, commitment, operator):
        result = ledger.actuals.create_actual(
            actual_draft(budget.id, "400001", commitment.id), operator,
        )
        assert result.failure.code == "EXCEEDS_COMMITMENT_REMAINING"
        assert str(commitment.id) in result.failure.reason

    def test_missing_payment_method(self, ledger, budget, operator):
        result = ledger.actuals.create_actual(
            actual_draft(budget.id, payment_method=""), operator,
        )
        assert result.failure.code == "MISSING_FIELD"

    def test_non_positive_amount(self, ledger, budget, operator):
        result = ledger.actuals.create_actual(actual_draft(budget.id, "-5"), operator)
        assert result.failure.code == "NON_POSITIVE_AMOUNT"

    def test_unknown_budget(self, ledger, operator):
        result = ledger.actuals.create_actual(actual_draft(uuid4()), operator)
        assert result.failure.code == "ENTITY_NOT_FOUND"


class TestCommitmentReference:

    def test_project_budget_requires_commitment(self, ledger, make_active_budget, operator):
        project = make_active_budget(budget_type=BudgetType.PROJECT, project_name="Fiber")
        result = ledger.actuals.create_actual(actual_draft(project.id, "1000"), operator)
        assert result.failure.kind is FailureKind.VALIDATION
        assert result.failure.code == "COMMITMENT_REQUIRED"

    def test_requirement_can_be_switched_off(
        self, deterministic_clock, operator, supervisor, admin,
    ):
        ledger = BudgetLedger(
            clock=deterministic_clock,
            config=LedgerConfig(project_requires_commitment=False),
        )
        project = ledger.budgets.create_budget(
            budget_draft(budget_type=BudgetType.PROJECT), operator, submit=True,
        ).unwrap()
        ledger.budgets.approve_budget_by_unit(project.id, supervisor).unwrap()
        ledger.budgets.approve_budget_by_admin(project.id, admin).unwrap()
        assert ledger.actuals.create_actual(actual_draft(project.id, "1000"), operator).is_success

    def test_unknown_commitment(self, ledger, budget, operator):
        result = ledger.actuals.create_actual(
            actual_draft(budget.id, "1000", uuid4()), operator,
        )
        assert result.failure.code == "ENTITY_NOT_FOUND"

    def test_commitment_of_other_budget(
        self, ledger, budget, make_active_budget, make_approved_commitment, operator,
    ):
        other = make_active_budget("500000")
        foreign = make_approved_commitment(other.id, "100000")
        result = ledger.actuals.create_actual(
            actual_draft(budget.id, "1000", foreign.id), operator,
        )
        assert result.failure.code == "COMMITMENT_MISMATCH"

    def test_commitment_not_finance_approved(self, ledger, budget, operator):
        pending = ledger.commitments.create_commitment(
            commitment_draft(budget.id), operator, submit=True,
        ).unwrap()
        result = ledger.actuals.create_actual(
            actual_draft(budget.id, "1000", pending.id), operator,
        )
        assert result.failure.kind is FailureKind.GUARD_VIOLATION
        assert result.failure.code == "COMMITMENT_NOT_APPROVED"


class TestPosting:

    def test_post_counts_as_actual(self, ledger, budget, commitment, operator, supervisor, admin):
        actual = ledger.actuals.create_actual(
            actual_draft(budget.id, "150000", commitment.id), operator, submit=True,
        ).unwrap()
        ledger.actuals.approve_actual_by_unit(actual.id, supervisor).unwrap()
        assert ledger.get_budget_balance(budget.id).total_actual == Decimal("0")

        posted = ledger.actuals.post_actual(actual.id, admin).unwrap()
        assert posted.status is ActualStatus.POSTED
        assert posted.posted_at is not None
        assert posted.approved_finance.actor_id == admin.actor_id

        balance = ledger.get_budget_balance(budget.id)
        assert balance.total_actual == Decimal("150000")
        assert balance.total_committed == Decimal("400000")
        assert balance.available_budget == Decimal("450000")

    def test_supervisor_cannot_post(self, ledger, budget, operator, supervisor):
        actual = ledger.actuals.create_actual(
            actual_draft(budget.id, "1000"), operator, submit=True,
        ).unwrap()
        ledger.actuals.approve_actual_by_unit(actual.id, supervisor).unwrap()
        result = ledger.actuals.post_actual(actual.id, supervisor)
        assert result.failure.code == "UNAUTHORIZED_ACTOR"

    def test_capacity_rechecked_at_posting(
        self, ledger, budget, commitment, make_posted_actual, operator, supervisor, admin,
    ):
        pending = ledger.actuals.create_actual(
            actual_draft(budget.id, "300000", commitment.id), operator, submit=True,
        ).unwrap()
        ledger.actuals.approve_actual_by_unit(pending.id, supervisor).unwrap()
        make_posted_actual(budget.id, "200000", commitment.id, invoice_number="INV-002")

        result = ledger.actuals.post_actual(pending.id, admin)
        assert result.failure.code == "EXCEEDS_COMMITMENT_REMAINING"
        assert ledger.actuals.get_actual(pending.id).status is ActualStatus.APPROVED_UNIT

    def test_completed_commitment_blocks_posting(
        self, ledger, budget, make_approved_commitment, operator, supervisor, admin,
    ):
        spk = make_approved_commitment(budget.id, "1000000")
        pending = ledger.actuals.create_actual(
            actual_draft(budget.id, "1000000", spk.id), operator, submit=True,
        ).unwrap()
        ledger.actuals.approve_actual_by_unit(pending.id, supervisor).unwrap()
        ledger.commitments.complete_commitment(spk.id, admin).unwrap()
        make_approved_commitment(budget.id, "1000000", spk_number="SPK-002")

        result = ledger.actuals.post_actual(pending.id, admin)
        assert result.failure.kind is FailureKind.GUARD_VIOLATION
        assert result.failure.code == "COMMITMENT_NOT_APPROVED"
        assert ledger.actuals.get_actual(pending.id).status is ActualStatus.APPROVED_UNIT
        balance = ledger.get_budget_balance(budget.id)
        assert balance.total_committed == Decimal("1000000")
        assert balance.total_actual == Decimal("0")

    def test_completed_commitment_blocks_submission(
        self, ledger, budget, make_approved_commitment, operator, admin,
    ):
        spk = make_approved_commitment(budget.id, "400000")
        draft = ledger.actuals.create_actual(
            actual_draft(budget.id, "100000", spk.id), operator,
        ).unwrap()
        ledger.commitments.complete_commitment(spk.id, admin).unwrap()

        result = ledger.actuals.submit_actual(draft.id, operator)
        assert result.failure.code == "COMMITMENT_NOT_APPROVED"
        assert ledger.actuals.get_actual(draft.id).status is ActualStatus.DRAFT

    def test_cancelling_posted_restores_availability(
        self, ledger, budget, make_posted_actual, admin,
    ):
        posted = make_posted_actual(budget.id, "250000")
        assert ledger.get_budget_balance(budget.id).available_budget == Decimal("750000")
        cancelled = ledger.actuals.cancel_actual(posted.id, admin).unwrap()
        assert cancelled.status is ActualStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert ledger.get_budget_balance(budget.id).available_budget == Decimal("1000000")

    def test_operator_cannot_cancel_posted(self, ledger, budget, make_posted_actual, operator):
        posted = make_posted_actual(budget.id, "1000")
        assert ledger.actuals.cancel_actual(posted.id, operator).failure.code == (
            "UNAUTHORIZED_ACTOR"
        )

    def test_operator_cancels_own_draft(self, ledger, budget, operator):
        actual = ledger.actuals.create_actual(actual_draft(budget.id, "1000"), operator).unwrap()
        assert ledger.actuals.cancel_actual(actual.id, operator).is_success

    def test_rejection_at_finance(self, ledger, budget, operator, supervisor, admin):
        actual = ledger.actuals.create_actual(
            actual_draft(budget.id, "1000"), operator, submit=True,
        ).unwrap()
        ledger.actuals.approve_actual_by_unit(actual.id, supervisor).unwrap()
        rejected = ledger.actuals.reject_actual(actual.id, admin, "Invoice mismatch").unwrap()
        assert rejected.status is ActualStatus.REJECTED
        assert rejected.rejection.stage is ApprovalStage.FINANCE
