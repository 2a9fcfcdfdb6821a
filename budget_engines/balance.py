"""
budget_engines.balance -- Budget balance calculator.

Responsibility:
    Derive a budget's approved amount, committed amount, posted actual
    amount and available remainder from a store snapshot.  This is the
    single source of truth for "how much budget is left"; no figure it
    returns is ever stored.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only ``budget_kernel`` domain types and the store snapshot.

Invariants enforced:
    - ACTIVE is the only spendable budget status.  Budgets in any other
      status, and unknown ids, yield an all-zero balance.
    - approved_budget == initial_amount + sum of APPROVED_FINANCE revision
      differences, exactly.
    - total_committed sums APPROVED_FINANCE commitments only; total_actual
      sums POSTED actuals only.
    - available_budget and remaining_after_commitments are clamped at 0.
    - Decimal-only arithmetic; identical snapshots give identical results.

Failure modes:
    - None.  Unknown budget ids are not an error here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from budget_engines.tracer import traced_engine
from budget_kernel.domain.entities import (
    ActualStatus,
    Budget,
    BudgetStatus,
    Commitment,
    CommitmentStatus,
    RevisionStatus,
)
from budget_kernel.store import StoreSnapshot

ZERO = Decimal("0")


@dataclass(frozen=True)
class BudgetBalance:
    """Derived spending position of one budget."""

    budget_id: UUID
    approved_budget: Decimal = ZERO
    total_committed: Decimal = ZERO
    total_actual: Decimal = ZERO
    available_budget: Decimal = ZERO
    remaining_after_commitments: Decimal = ZERO

    @property
    def is_zero(self) -> bool:
        return (
            self.approved_budget == ZERO
            and self.total_committed == ZERO
            and self.total_actual == ZERO
        )


def approved_amount(snapshot: StoreSnapshot, budget: Budget) -> Decimal:
    """Initial amount plus every finance-approved revision difference."""
    return budget.initial_amount + sum(
        (r.difference for r in snapshot.revisions_for(budget.id)
         if r.status is RevisionStatus.APPROVED_FINANCE),
        ZERO,
    )


def total_committed(snapshot: StoreSnapshot, budget_id: UUID) -> Decimal:
    return sum(
        (c.amount for c in snapshot.commitments_for(budget_id)
         if c.status is CommitmentStatus.APPROVED_FINANCE),
        ZERO,
    )


def total_actual(snapshot: StoreSnapshot, budget_id: UUID) -> Decimal:
    return sum(
        (a.amount for a in snapshot.actuals_for(budget_id)
         if a.status is ActualStatus.POSTED),
        ZERO,
    )


def committed_and_actual(snapshot: StoreSnapshot, budget_id: UUID) -> Decimal:
    return total_committed(snapshot, budget_id) + total_actual(snapshot, budget_id)


def commitment_remaining(snapshot: StoreSnapshot, commitment: Commitment) -> Decimal:
    """Commitment amount less the actuals already posted against it."""
    posted = sum(
        (a.amount for a in snapshot.posted_actuals_for_commitment(commitment.id)),
        ZERO,
    )
    return max(ZERO, commitment.amount - posted)


@traced_engine("balance", "1.0", fingerprint_fields=("budget_id",))
def compute_balance(snapshot: StoreSnapshot, budget_id: UUID) -> BudgetBalance:
    """Compute the balance of one budget from the snapshot."""
    budget = snapshot.budget(budget_id)
    if budget is None or budget.status is not BudgetStatus.ACTIVE:
        return BudgetBalance(budget_id=budget_id)

    approved = approved_amount(snapshot, budget)
    committed = total_committed(snapshot, budget_id)
    actual = total_actual(snapshot, budget_id)
    return BudgetBalance(
        budget_id=budget_id,
        approved_budget=approved,
        total_committed=committed,
        total_actual=actual,
        available_budget=max(ZERO, approved - committed - actual),
        remaining_after_commitments=max(ZERO, approved - committed),
    )
