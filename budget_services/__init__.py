"""
budget_services -- Package init and public API.

Responsibility:
    Stateful orchestration over the pure engines: the workflow executor
    that decides state transitions, the in-memory reference data provider
    and the ``BudgetLedger`` facade (``budget_services.ledger``).

Architecture position:
    Services -- stateful orchestration over engines + kernel.

        budget_services/ -> budget_engines/  (allowed)
        budget_services/ -> budget_kernel/   (allowed)
        budget_engines/  -> budget_services/ (FORBIDDEN)
        budget_kernel/   -> budget_services/ (FORBIDDEN)

    ``BudgetLedger`` is imported from ``budget_services.ledger`` directly;
    budget_modules import the executor from this package.
"""

from budget_services.reference_data import StaticReferenceData
from budget_services.workflow_executor import (
    GuardExecutor,
    WorkflowExecutor,
    default_guard_executor,
)

__all__ = [
    "GuardExecutor",
    "StaticReferenceData",
    "WorkflowExecutor",
    "default_guard_executor",
]
