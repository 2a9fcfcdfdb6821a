"""
Module: budget_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    higher layers (budget_services, budget_modules).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import budget_kernel (domain types, store snapshot, logging).
    MUST NOT import budget_services or budget_modules.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``; every figure is a
      function of the snapshot passed in.
    - Decimal-only arithmetic: floats are forbidden.
    - Determinism: identical snapshots always produce identical outputs.
"""

from budget_engines.approval_router import (
    PendingApprovals,
    collect_submissions,
    items_for_unit,
    route_pending_approvals,
)
from budget_engines.balance import (
    BudgetBalance,
    approved_amount,
    commitment_remaining,
    committed_and_actual,
    compute_balance,
)
from budget_engines.reporting import (
    BudgetVsActualRow,
    DashboardSummary,
    MonthlyActual,
    MonthlyTrend,
    project_budget_vs_actual,
    summarize_dashboard,
    utilization_percent,
)

__all__ = [
    # Approval router
    "PendingApprovals",
    "collect_submissions",
    "items_for_unit",
    "route_pending_approvals",
    # Balance
    "BudgetBalance",
    "approved_amount",
    "commitment_remaining",
    "committed_and_actual",
    "compute_balance",
    # Reporting
    "BudgetVsActualRow",
    "DashboardSummary",
    "MonthlyActual",
    "MonthlyTrend",
    "project_budget_vs_actual",
    "summarize_dashboard",
    "utilization_percent",
]
