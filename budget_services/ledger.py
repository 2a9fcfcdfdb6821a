"""
budget_services.ledger -- BudgetLedger facade.

Responsibility:
    Wires one ``EntityStore``, one ``WorkflowExecutor`` and the four
    lifecycle services together, and exposes the read side (balances,
    approval queues, reports, dashboard) over fresh store snapshots.

Architecture position:
    Services -- composition root.  Imports budget_modules for wiring; the
    package ``__init__`` deliberately does not import this module, so
    budget_modules can depend on ``budget_services.workflow_executor``
    without an import cycle.

Invariants enforced:
    - No global state: every collaborator is injected or built here.
    - Read methods never mutate the store; every figure is recomputed
      from the snapshot taken at call time.
"""

from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

from budget_config.schema import LedgerConfig
from budget_engines.approval_router import (
    PendingApprovals,
    collect_submissions,
    route_pending_approvals,
)
from budget_engines.balance import BudgetBalance, compute_balance
from budget_engines.reporting import (
    BudgetVsActualRow,
    DashboardSummary,
    project_budget_vs_actual,
    summarize_dashboard,
)
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.entities import BudgetType
from budget_kernel.domain.reference_data import ReferenceDataProvider
from budget_kernel.domain.roles import Actor, ActorRole
from budget_kernel.logging_config import get_logger
from budget_kernel.store import EntityStore
from budget_modules.actual.service import ActualLifecycleService
from budget_modules.budget.service import BudgetLifecycleService
from budget_modules.commitment.service import CommitmentLifecycleService
from budget_modules.revision.service import RevisionLifecycleService
from budget_services.workflow_executor import GuardExecutor, WorkflowExecutor

logger = get_logger("services.ledger")


class BudgetLedger:
    """Entry point for every budget, revision, commitment and payment operation.

    Mutations go through the lifecycle services exposed as ``budgets``,
    ``revisions``, ``commitments`` and ``actuals``.  The ``get_*`` methods
    are the read side.
    """

    def __init__(
        self,
        store: EntityStore | None = None,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
        reference_data: ReferenceDataProvider | None = None,
        guard_executor: GuardExecutor | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ) -> None:
        self.store = store or EntityStore()
        self.clock = clock or SystemClock()
        self.config = config or LedgerConfig.with_defaults()
        self._reference_data = reference_data

        executor = WorkflowExecutor(guard_executor=guard_executor, clock=self.clock)
        self.budgets = BudgetLifecycleService(
            self.store, executor, clock=self.clock, config=self.config,
            reference_data=reference_data, outcome_sink=outcome_sink,
        )
        self.revisions = RevisionLifecycleService(
            self.store, executor, clock=self.clock, outcome_sink=outcome_sink,
        )
        self.commitments = CommitmentLifecycleService(
            self.store, executor, clock=self.clock, outcome_sink=outcome_sink,
        )
        self.actuals = ActualLifecycleService(
            self.store, executor, clock=self.clock, config=self.config,
            outcome_sink=outcome_sink,
        )

        logger.info("budget_ledger_initialized", extra={
            "config_id": self.config.config_id,
            "config_version": self.config.version,
            "has_reference_data": reference_data is not None,
        })

    # =========================================================================
    # Read side
    # =========================================================================

    def get_budget_balance(self, budget_id: UUID) -> BudgetBalance:
        """Derived balance; all zero unless the budget is ACTIVE."""
        return compute_balance(self.store.snapshot(), budget_id=budget_id)

    def get_pending_approvals_for_viewer(
        self,
        role: ActorRole,
        unit_id: str | None = None,
        fiscal_year: int | None = None,
    ) -> PendingApprovals:
        return route_pending_approvals(
            self.store.snapshot(), role=role, unit_id=unit_id, fiscal_year=fiscal_year,
        )

    def get_my_submissions(self, actor: Actor) -> PendingApprovals:
        return collect_submissions(self.store.snapshot(), actor)

    def get_budget_vs_actual_report(
        self,
        fiscal_year: int,
        budget_type: BudgetType | None = None,
        unit_id: str | None = None,
    ) -> tuple[BudgetVsActualRow, ...]:
        unit_name = self._reference_data.unit_name if self._reference_data else None
        return project_budget_vs_actual(
            self.store.snapshot(),
            fiscal_year=fiscal_year,
            budget_type=budget_type,
            unit_id=unit_id,
            unit_name=unit_name,
            default_name=self.config.default_project_name,
            utilization_places=self.config.utilization_places,
        )

    def get_dashboard_summary(self, actor: Actor, fiscal_year: int) -> DashboardSummary:
        """Corporate totals for budget admins, the actor's own unit otherwise."""
        snapshot = self.store.snapshot()
        unit_id = None if actor.role is ActorRole.ADMIN_BUDGET else actor.unit_id
        pending = route_pending_approvals(
            snapshot, role=actor.role, unit_id=actor.unit_id, fiscal_year=fiscal_year,
        )
        return summarize_dashboard(
            snapshot,
            fiscal_year=fiscal_year,
            unit_id=unit_id,
            pending_approvals=pending.total,
            amount_places=self.config.amount_places,
        )
