"""
Pure domain layer.

This module contains pure data objects and domain rules
with NO dependencies on:
- The entity store
- Engines, services or modules
- Time/clock (beyond the injectable Clock interface)
- I/O

All domain objects are immutable and deterministic.
"""

from budget_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from budget_kernel.domain.entities import (
    ActualDraft,
    ActualPayment,
    ActualStatus,
    ApprovalStage,
    ApprovalStamp,
    Budget,
    BudgetDraft,
    BudgetRevision,
    BudgetStatus,
    BudgetType,
    Commitment,
    CommitmentDraft,
    CommitmentStatus,
    ExpenditureClass,
    Rejection,
    RevisionDraft,
    RevisionRequest,
    RevisionStatus,
)
from budget_kernel.domain.reference_data import (
    FiscalYearStatus,
    ReferenceDataProvider,
)
from budget_kernel.domain.results import (
    Failure,
    FailureKind,
    OperationResult,
    OperationStatus,
)
from budget_kernel.domain.roles import (
    Actor,
    ActorRole,
    Capability,
    CapabilityScope,
    can_act_on_unit,
    can_view_unit,
    has_capability,
)
from budget_kernel.domain.workflow import Guard, Transition, TransitionResult, Workflow

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Entities
    "ActualDraft",
    "ActualPayment",
    "ActualStatus",
    "ApprovalStage",
    "ApprovalStamp",
    "Budget",
    "BudgetDraft",
    "BudgetRevision",
    "BudgetStatus",
    "BudgetType",
    "Commitment",
    "CommitmentDraft",
    "CommitmentStatus",
    "ExpenditureClass",
    "Rejection",
    "RevisionDraft",
    "RevisionRequest",
    "RevisionStatus",
    # Master data
    "FiscalYearStatus",
    "ReferenceDataProvider",
    # Results
    "Failure",
    "FailureKind",
    "OperationResult",
    "OperationStatus",
    # Roles
    "Actor",
    "ActorRole",
    "Capability",
    "CapabilityScope",
    "can_act_on_unit",
    "can_view_unit",
    "has_capability",
    # Workflow
    "Guard",
    "Transition",
    "TransitionResult",
    "Workflow",
]
