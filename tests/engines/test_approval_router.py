"""Tests for the approval router (budget_engines/approval_router.py)."""

from budget_engines.approval_router import (
    collect_submissions,
    items_for_unit,
    route_pending_approvals,
)
from budget_kernel.domain.entities import (
    ActualStatus,
    BudgetStatus,
    CommitmentStatus,
    RevisionStatus,
)
from budget_kernel.domain.roles import Actor, ActorRole
from budget_kernel.store import StoreSnapshot
from tests.builders import (
    UNIT_A,
    UNIT_B,
    make_actual,
    make_budget,
    make_commitment,
    make_revision,
)


def _mixed_snapshot():
    active_a = make_budget(unit_id=UNIT_A)
    active_b = make_budget(unit_id=UNIT_B)
    return StoreSnapshot(
        budgets=(
            active_a,
            active_b,
            make_budget(unit_id=UNIT_A, status=BudgetStatus.SUBMITTED),
            make_budget(unit_id=UNIT_B, status=BudgetStatus.SUBMITTED),
            make_budget(unit_id=UNIT_B, status=BudgetStatus.APPROVED_SUPERVISOR),
            make_budget(unit_id=UNIT_A, status=BudgetStatus.DRAFT),
        ),
        revisions=(
            make_revision(active_a, "1100000", status=RevisionStatus.SUBMITTED),
            make_revision(active_b, "1100000", status=RevisionStatus.APPROVED_UNIT),
        ),
        commitments=(
            make_commitment(active_a, status=CommitmentStatus.SUBMITTED),
            make_commitment(active_a, status=CommitmentStatus.APPROVED_UNIT),
        ),
        actuals=(
            make_actual(active_b, status=ActualStatus.SUBMITTED),
            make_actual(active_a, status=ActualStatus.APPROVED_UNIT),
        ),
    )


class TestSupervisorQueue:

    def test_submitted_items_of_own_unit(self):
        pending = route_pending_approvals(_mixed_snapshot(), ActorRole.SUPERVISOR, UNIT_A)
        assert [b.status for b in pending.budgets] == [BudgetStatus.SUBMITTED]
        assert all(b.unit_id == UNIT_A for b in pending.budgets)
        assert len(pending.revisions) == 1
        assert len(pending.commitments) == 1
        assert pending.actuals == ()
        assert pending.total == 3

    def test_other_unit_sees_its_own(self):
        pending = route_pending_approvals(_mixed_snapshot(), ActorRole.SUPERVISOR, UNIT_B)
        assert len(pending.budgets) == 1
        assert len(pending.actuals) == 1
        assert pending.revisions == ()


class TestAdminQueue:

    def test_stage_two_items_across_units(self):
        pending = route_pending_approvals(_mixed_snapshot(), ActorRole.ADMIN_BUDGET, None)
        assert [b.status for b in pending.budgets] == [BudgetStatus.APPROVED_SUPERVISOR]
        assert [r.status for r in pending.revisions] == [RevisionStatus.APPROVED_UNIT]
        assert [c.status for c in pending.commitments] == [CommitmentStatus.APPROVED_UNIT]
        assert [a.status for a in pending.actuals] == [ActualStatus.APPROVED_UNIT]

    def test_fiscal_year_filter(self):
        snapshot = StoreSnapshot(budgets=(
            make_budget(status=BudgetStatus.APPROVED_SUPERVISOR, fiscal_year=2024),
            make_budget(status=BudgetStatus.APPROVED_SUPERVISOR, fiscal_year=2025),
        ))
        pending = route_pending_approvals(snapshot, ActorRole.ADMIN_BUDGET, None, 2025)
        assert [b.fiscal_year for b in pending.budgets] == [2025]


class TestOperator:

    def test_operator_queue_empty(self):
        pending = route_pending_approvals(_mixed_snapshot(), ActorRole.OPERATOR, UNIT_A)
        assert pending.is_empty

    def test_my_submissions(self):
        mine = make_budget(created_by="op-1", status=BudgetStatus.REJECTED)
        theirs = make_budget(created_by="op-9")
        other_unit = make_budget(created_by="op-1", unit_id=UNIT_B)
        snapshot = StoreSnapshot(budgets=(mine, theirs, other_unit))
        result = collect_submissions(snapshot, Actor("op-1", ActorRole.OPERATOR, UNIT_A))
        assert result.budgets == (mine,)


class TestItemsForUnit:

    def test_every_status_included(self):
        snapshot = _mixed_snapshot()
        items = items_for_unit(snapshot, UNIT_A)
        assert len(items.budgets) == 3
        assert all(i.unit_id == UNIT_A for i in items.commitments + items.actuals)
