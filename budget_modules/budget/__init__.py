"""Budget lifecycle: transition table and service."""

from budget_modules.budget.service import BudgetLifecycleService
from budget_modules.budget.workflows import BUDGET_WORKFLOW

__all__ = ["BudgetLifecycleService", "BUDGET_WORKFLOW"]
