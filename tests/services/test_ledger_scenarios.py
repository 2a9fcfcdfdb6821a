"""
End-to-end ledger scenarios through the BudgetLedger facade.

Scenarios A-D run in sequence on one budget: activation, a finance-approved
commitment, a posted payment against it, and a revision that would drop the
approved amount below what is already committed plus spent.
"""

from decimal import Decimal

import pytest

from budget_kernel.domain.entities import (
    BudgetStatus,
    CommitmentStatus,
    RevisionDraft,
    RevisionStatus,
)
from budget_kernel.domain.results import FailureKind
from tests.builders import actual_draft, budget_draft, commitment_draft

pytestmark = pytest.mark.scenario


class TestScenarios:

    def test_a_budget_activation(self, ledger, operator, supervisor, admin):
        budget = ledger.budgets.create_budget(
            budget_draft("1000000"), operator, submit=True,
        ).unwrap()
        ledger.budgets.approve_budget_by_unit(budget.id, supervisor).unwrap()
        active = ledger.budgets.approve_budget_by_admin(budget.id, admin).unwrap()

        assert active.status is BudgetStatus.ACTIVE
        balance = ledger.get_budget_balance(budget.id)
        assert balance.approved_budget == Decimal("1000000")
        assert balance.available_budget == Decimal("1000000")

    def test_b_commitment(self, ledger, make_active_budget, operator, supervisor, admin):
        budget = make_active_budget("1000000")
        commitment = ledger.commitments.create_commitment(
            commitment_draft(budget.id, "400000"), operator, submit=True,
        ).unwrap()
        ledger.commitments.approve_commitment_by_unit(commitment.id, supervisor).unwrap()
        ledger.commitments.approve_commitment_by_finance(commitment.id, admin).unwrap()

        balance = ledger.get_budget_balance(budget.id)
        assert balance.total_committed == Decimal("400000")
        assert balance.available_budget == Decimal("600000")

    def test_c_actual_against_commitment(
        self, ledger, make_active_budget, make_approved_commitment, operator, supervisor, admin,
    ):
        budget = make_active_budget("1000000")
        commitment = make_approved_commitment(budget.id, "400000")

        actual = ledger.actuals.create_actual(
            actual_draft(budget.id, "400000", commitment.id), operator, submit=True,
        ).unwrap()
        ledger.actuals.approve_actual_by_unit(actual.id, supervisor).unwrap()
        ledger.actuals.post_actual(actual.id, admin).unwrap()

        balance = ledger.get_budget_balance(budget.id)
        assert balance.total_actual == Decimal("400000")
        assert balance.available_budget == Decimal("200000")

        second = ledger.actuals.create_actual(
            actual_draft(budget.id, "50000", commitment.id, invoice_number="INV-002"), operator,
        )
        assert second.failure.kind is FailureKind.CAPACITY_EXCEEDED
        assert second.failure.code == "EXCEEDS_COMMITMENT_REMAINING"
        assert len(ledger.actuals.actuals_for_budget(budget.id)) == 1

    def test_d_revision_below_committed_and_actual(
        self, ledger, make_active_budget, make_approved_commitment, make_posted_actual, operator,
    ):
        budget = make_active_budget("1000000")
        commitment = make_approved_commitment(budget.id, "400000")
        make_posted_actual(budget.id, "400000", commitment.id)

        result = ledger.revisions.create_revision(
            RevisionDraft(budget.id, Decimal("500000"), "Reduce scope"), operator, submit=True,
        )
        assert not result.is_success
        assert result.failure.kind is FailureKind.CAPACITY_EXCEEDED
        assert result.failure.code == "BELOW_COMMITTED_AND_ACTUAL"
        assert ledger.revisions.revisions_for_budget(budget.id) == ()
        assert ledger.get_budget_balance(budget.id).approved_budget == Decimal("1000000")


class TestLedgerProperties:

    def test_capacity_guard_on_commitment(self, ledger, make_active_budget, operator):
        budget = make_active_budget("1000000")
        result = ledger.commitments.create_commitment(
            commitment_draft(budget.id, "1500000"), operator,
        )
        assert result.failure.kind is FailureKind.CAPACITY_EXCEEDED

    def test_balance_reads_are_idempotent(
        self, ledger, make_active_budget, make_approved_commitment,
    ):
        budget = make_active_budget("1000000")
        make_approved_commitment(budget.id, "250000")
        assert ledger.get_budget_balance(budget.id) == ledger.get_budget_balance(budget.id)

    def test_approved_identity_after_revisions(
        self, ledger, make_active_budget, operator, supervisor, admin,
    ):
        budget = make_active_budget("1000000")
        for new_amount in ("1300000", "1100000"):
            revision = ledger.revisions.create_revision(
                RevisionDraft(budget.id, Decimal(new_amount), "Adjust"), operator, submit=True,
            ).unwrap()
            ledger.revisions.approve_revision_by_unit(revision.id, supervisor).unwrap()
            ledger.revisions.approve_revision_by_finance(revision.id, admin).unwrap()

        revisions = ledger.revisions.revisions_for_budget(budget.id)
        assert all(r.status is RevisionStatus.APPROVED_FINANCE for r in revisions)
        assert ledger.get_budget_balance(budget.id).approved_budget == (
            budget.initial_amount + sum(r.difference for r in revisions)
        ) == Decimal("1100000")

    def test_completion_releases_then_direct_spend_fits(
        self, ledger, make_active_budget, make_approved_commitment, make_posted_actual, admin,
    ):
        budget = make_active_budget("1000000")
        commitment = make_approved_commitment(budget.id, "900000")
        make_posted_actual(budget.id, "300000", commitment.id)
        ledger.commitments.complete_commitment(commitment.id, admin).unwrap()
        assert ledger.commitments.get_commitment(commitment.id).status is (
            CommitmentStatus.COMPLETED
        )
        balance = ledger.get_budget_balance(budget.id)
        assert balance.total_committed == Decimal("0")
        assert balance.available_budget == Decimal("700000")

    def test_report_does_not_mutate_store(self, ledger, make_active_budget, make_posted_actual):
        budget = make_active_budget("1000000")
        make_posted_actual(budget.id, "100000")
        before = ledger.store.snapshot()
        ledger.get_budget_vs_actual_report(2025)
        ledger.get_budget_balance(budget.id)
        assert ledger.store.snapshot() == before

    def test_fiscal_year_close_zeroes_balances(
        self, ledger, make_active_budget, make_approved_commitment, operator, admin,
    ):
        budget = make_active_budget("1000000")
        make_approved_commitment(budget.id, "100000")
        ledger.budgets.close_fiscal_year(2025, admin).unwrap()
        assert ledger.get_budget_balance(budget.id).is_zero
        result = ledger.commitments.create_commitment(commitment_draft(budget.id, "1"), operator)
        assert result.failure.code == "BUDGET_NOT_ACTIVE"

    def test_rejected_budget_accepts_nothing(self, ledger, operator, supervisor, admin):
        budget = ledger.budgets.create_budget(budget_draft(), operator, submit=True).unwrap()
        ledger.budgets.reject_budget(budget.id, supervisor, "Duplicate").unwrap()
        for attempt in (
            ledger.budgets.approve_budget_by_unit(budget.id, supervisor),
            ledger.budgets.approve_budget_by_admin(budget.id, admin),
            ledger.budgets.close_budget(budget.id, admin),
        ):
            assert attempt.failure.code == "INVALID_TRANSITION"
        assert ledger.budgets.get_budget(budget.id).status is BudgetStatus.REJECTED
