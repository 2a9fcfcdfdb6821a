"""
budget_engines.approval_router -- Who must act on what.

Responsibility:
    For a viewer (role + unit) compute the budgets, revisions, commitments
    and actual payments waiting on that viewer's decision.  Also provides
    the operator's "my submissions" read and a per-unit listing.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Recomputed from a fresh
    snapshot on every call.

Invariants enforced:
    - Supervisors see SUBMITTED items of their own unit only.
    - Budget admins see the stage-two queue across all units:
      APPROVED_SUPERVISOR budgets and APPROVED_UNIT revisions,
      commitments and actuals.
    - Operators are not approvers and always get an empty queue.
    - Output preserves store insertion order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TypeVar

from budget_engines.tracer import traced_engine
from budget_kernel.domain.entities import (
    ActualPayment,
    ActualStatus,
    Budget,
    BudgetRevision,
    BudgetStatus,
    Commitment,
    CommitmentStatus,
    RevisionStatus,
)
from budget_kernel.domain.roles import Actor, ActorRole
from budget_kernel.store import StoreSnapshot

T = TypeVar("T", Budget, BudgetRevision, Commitment, ActualPayment)


@dataclass(frozen=True)
class PendingApprovals:
    """Items grouped by entity kind."""

    budgets: tuple[Budget, ...] = ()
    revisions: tuple[BudgetRevision, ...] = ()
    commitments: tuple[Commitment, ...] = ()
    actuals: tuple[ActualPayment, ...] = ()

    @property
    def total(self) -> int:
        return (
            len(self.budgets)
            + len(self.revisions)
            + len(self.commitments)
            + len(self.actuals)
        )

    @property
    def is_empty(self) -> bool:
        return self.total == 0


def _select(items: Iterable[T], predicate: Callable[[T], bool]) -> tuple[T, ...]:
    return tuple(item for item in items if predicate(item))


def _in_year(snapshot: StoreSnapshot, fiscal_year: int | None) -> Callable[[T], bool]:
    if fiscal_year is None:
        return lambda item: True

    def check(item: T) -> bool:
        if isinstance(item, Budget):
            return item.fiscal_year == fiscal_year
        parent = snapshot.budget(item.budget_id)
        return parent is not None and parent.fiscal_year == fiscal_year

    return check


@traced_engine("approval_router", "1.0", fingerprint_fields=("role", "unit_id", "fiscal_year"))
def route_pending_approvals(
    snapshot: StoreSnapshot,
    role: ActorRole,
    unit_id: str | None,
    fiscal_year: int | None = None,
) -> PendingApprovals:
    """Items waiting on a viewer with ``role`` in ``unit_id``."""
    in_year = _in_year(snapshot, fiscal_year)

    if role is ActorRole.SUPERVISOR:
        def pending(status):
            return lambda item: (
                item.status is status and item.unit_id == unit_id and in_year(item)
            )

        return PendingApprovals(
            budgets=_select(snapshot.budgets, pending(BudgetStatus.SUBMITTED)),
            revisions=_select(snapshot.revisions, pending(RevisionStatus.SUBMITTED)),
            commitments=_select(snapshot.commitments, pending(CommitmentStatus.SUBMITTED)),
            actuals=_select(snapshot.actuals, pending(ActualStatus.SUBMITTED)),
        )

    if role is ActorRole.ADMIN_BUDGET:
        def pending(status):
            return lambda item: item.status is status and in_year(item)

        return PendingApprovals(
            budgets=_select(snapshot.budgets, pending(BudgetStatus.APPROVED_SUPERVISOR)),
            revisions=_select(snapshot.revisions, pending(RevisionStatus.APPROVED_UNIT)),
            commitments=_select(snapshot.commitments, pending(CommitmentStatus.APPROVED_UNIT)),
            actuals=_select(snapshot.actuals, pending(ActualStatus.APPROVED_UNIT)),
        )

    return PendingApprovals()


def collect_submissions(snapshot: StoreSnapshot, actor: Actor) -> PendingApprovals:
    """Everything the actor created in their own unit, in any status."""

    def mine(item) -> bool:
        return item.created_by == actor.actor_id and item.unit_id == actor.unit_id

    return PendingApprovals(
        budgets=_select(snapshot.budgets, mine),
        revisions=_select(snapshot.revisions, mine),
        commitments=_select(snapshot.commitments, mine),
        actuals=_select(snapshot.actuals, mine),
    )


def items_for_unit(snapshot: StoreSnapshot, unit_id: str) -> PendingApprovals:
    """Every item belonging to ``unit_id``, in any status."""

    def in_unit(item) -> bool:
        return item.unit_id == unit_id

    return PendingApprovals(
        budgets=_select(snapshot.budgets, in_unit),
        revisions=_select(snapshot.revisions, in_unit),
        commitments=_select(snapshot.commitments, in_unit),
        actuals=_select(snapshot.actuals, in_unit),
    )
