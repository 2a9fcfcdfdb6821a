"""
budget_engines.reporting -- Budget-vs-actual and dashboard projections.

Responsibility:
    Build the monitoring views derived from the balance calculator:
    one budget-vs-actual row per ACTIVE budget of a fiscal year (with
    POSTED actuals bucketed into twelve calendar months), and the
    dashboard summary (totals, available remainder, monthly trend).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Read-only: nothing here
    ever writes to the store.

Invariants enforced:
    - Only ACTIVE budgets are reported.
    - Monthly buckets hold POSTED actuals by the month of ``posted_at``
      within the fiscal year; exactly twelve buckets per row.
    - utilization_percent = total_actual / approved_budget * 100,
      quantized to ``utilization_places``; 0 when approved_budget is 0.

Failure modes:
    - None.  An empty year produces an empty report.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from budget_engines.balance import ZERO, BudgetBalance, compute_balance
from budget_engines.tracer import traced_engine
from budget_kernel.domain.entities import (
    ActualPayment,
    ActualStatus,
    Budget,
    BudgetStatus,
    BudgetType,
)
from budget_kernel.store import StoreSnapshot

MONTHS_PER_YEAR = 12
DEFAULT_PROJECT_NAME = "Routine Operations"

UnitNameLookup = Callable[[str], str | None]


@dataclass(frozen=True)
class MonthlyActual:
    """POSTED actuals of one budget in one calendar month."""

    month: int
    year: int
    posted_amount: Decimal
    transactions: tuple[ActualPayment, ...] = ()


@dataclass(frozen=True)
class BudgetVsActualRow:
    budget_id: UUID
    name: str
    unit_id: str
    unit: str
    coa: str
    budget_type: BudgetType
    balance: BudgetBalance
    monthly_actuals: tuple[MonthlyActual, ...]
    utilization_percent: Decimal

    @property
    def approved_budget(self) -> Decimal:
        return self.balance.approved_budget

    @property
    def total_committed(self) -> Decimal:
        return self.balance.total_committed

    @property
    def total_actual(self) -> Decimal:
        return self.balance.total_actual

    @property
    def available_budget(self) -> Decimal:
        return self.balance.available_budget


@dataclass(frozen=True)
class MonthlyTrend:
    month: int
    budget: Decimal
    actual: Decimal


@dataclass(frozen=True)
class DashboardSummary:
    """Headline figures for one viewer."""

    fiscal_year: int
    unit_id: str | None
    total_budget: Decimal
    total_committed: Decimal
    total_actual: Decimal
    available: Decimal
    trend: tuple[MonthlyTrend, ...]
    pending_approvals: int = 0

    @property
    def low_availability(self) -> bool:
        """Available is under a tenth of the total budget."""
        return self.total_budget > ZERO and self.available < self.total_budget / 10


def utilization_percent(
    total_actual: Decimal, approved_budget: Decimal, places: int = 2,
) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    if approved_budget <= ZERO:
        return ZERO.quantize(quantum)
    return (total_actual / approved_budget * 100).quantize(quantum, rounding=ROUND_HALF_UP)


def _posted_in_month(
    actuals: tuple[ActualPayment, ...], year: int, month: int,
) -> tuple[ActualPayment, ...]:
    selected = []
    for a in actuals:
        if a.status is not ActualStatus.POSTED:
            continue
        stamp = a.posted_at or a.created_at
        if stamp.year == year and stamp.month == month:
            selected.append(a)
    return tuple(selected)


def monthly_actuals(
    snapshot: StoreSnapshot, budget_id: UUID, fiscal_year: int,
) -> tuple[MonthlyActual, ...]:
    actuals = snapshot.actuals_for(budget_id)
    buckets = []
    for month in range(1, MONTHS_PER_YEAR + 1):
        transactions = _posted_in_month(actuals, fiscal_year, month)
        buckets.append(MonthlyActual(
            month=month,
            year=fiscal_year,
            posted_amount=sum((t.amount for t in transactions), ZERO),
            transactions=transactions,
        ))
    return tuple(buckets)


def _reported_budgets(
    snapshot: StoreSnapshot,
    fiscal_year: int,
    budget_type: BudgetType | None,
    unit_id: str | None,
) -> list[Budget]:
    return [
        b for b in snapshot.budgets
        if b.fiscal_year == fiscal_year
        and b.status is BudgetStatus.ACTIVE
        and (budget_type is None or b.budget_type is budget_type)
        and (unit_id is None or b.unit_id == unit_id)
    ]


@traced_engine("reporting", "1.0", fingerprint_fields=("fiscal_year", "budget_type", "unit_id"))
def project_budget_vs_actual(
    snapshot: StoreSnapshot,
    fiscal_year: int,
    budget_type: BudgetType | None = None,
    *,
    unit_id: str | None = None,
    unit_name: UnitNameLookup | None = None,
    default_name: str = DEFAULT_PROJECT_NAME,
    utilization_places: int = 2,
) -> tuple[BudgetVsActualRow, ...]:
    """One row per ACTIVE budget of ``fiscal_year``."""
    rows = []
    for budget in _reported_budgets(snapshot, fiscal_year, budget_type, unit_id):
        balance = compute_balance(snapshot, budget_id=budget.id)
        display_unit = (unit_name(budget.unit_id) if unit_name else None) or budget.unit_id
        rows.append(BudgetVsActualRow(
            budget_id=budget.id,
            name=budget.project_name or default_name,
            unit_id=budget.unit_id,
            unit=display_unit,
            coa=budget.coa,
            budget_type=budget.budget_type,
            balance=balance,
            monthly_actuals=monthly_actuals(snapshot, budget.id, fiscal_year),
            utilization_percent=utilization_percent(
                balance.total_actual, balance.approved_budget, utilization_places,
            ),
        ))
    return tuple(rows)


@traced_engine("dashboard", "1.0", fingerprint_fields=("fiscal_year", "unit_id"))
def summarize_dashboard(
    snapshot: StoreSnapshot,
    fiscal_year: int,
    *,
    unit_id: str | None = None,
    pending_approvals: int = 0,
    amount_places: int = 0,
) -> DashboardSummary:
    """Totals over ACTIVE budgets, corporate-wide when ``unit_id`` is None."""
    budgets = _reported_budgets(snapshot, fiscal_year, None, unit_id)
    balances = [compute_balance(snapshot, budget_id=b.id) for b in budgets]

    total_budget = sum((b.approved_budget for b in balances), ZERO)
    committed = sum((b.total_committed for b in balances), ZERO)
    actual = sum((b.total_actual for b in balances), ZERO)

    quantum = Decimal(1).scaleb(-amount_places)
    monthly_budget = (total_budget / MONTHS_PER_YEAR).quantize(quantum, rounding=ROUND_HALF_UP)
    trend = []
    for month in range(1, MONTHS_PER_YEAR + 1):
        month_actual = ZERO
        for budget in budgets:
            posted = _posted_in_month(snapshot.actuals_for(budget.id), fiscal_year, month)
            month_actual += sum((a.amount for a in posted), ZERO)
        trend.append(MonthlyTrend(month=month, budget=monthly_budget, actual=month_actual))

    return DashboardSummary(
        fiscal_year=fiscal_year,
        unit_id=unit_id,
        total_budget=total_budget,
        total_committed=committed,
        total_actual=actual,
        available=max(ZERO, total_budget - committed - actual),
        trend=tuple(trend),
        pending_approvals=pending_approvals,
    )
