"""Commitment (SPK) Workflows.

Two-stage approval that reserves budget capacity ahead of payment, plus
completion and cancellation.  Only APPROVED_FINANCE commitments count as
committed.
"""

from budget_kernel.domain.entities import CommitmentStatus
from budget_kernel.domain.results import FailureKind
from budget_kernel.domain.roles import Capability
from budget_kernel.domain.workflow import Guard, Transition, Workflow
from budget_kernel.logging_config import get_logger

logger = get_logger("modules.commitment.workflows")

PARENT_BUDGET_ACTIVE = Guard(
    "parent_budget_active",
    "Budget {budget_id} is {budget_status}; commitments need an active budget",
    failure_kind=FailureKind.GUARD_VIOLATION,
    code="BUDGET_NOT_ACTIVE",
)
POSITIVE_AMOUNT = Guard(
    "positive_amount",
    "Commitment amount must be greater than zero, got {amount}",
    code="NON_POSITIVE_AMOUNT",
)
WITHIN_AVAILABLE_BUDGET = Guard(
    "within_available_budget",
    "Commitment amount {amount} exceeds available budget {available_budget}",
    failure_kind=FailureKind.CAPACITY_EXCEEDED,
    code="EXCEEDS_AVAILABLE_BUDGET",
)
REASON_PROVIDED = Guard(
    "reason_provided",
    "A rejection reason is required",
    code="MISSING_FIELD",
)

CREATION_GUARDS = (PARENT_BUDGET_ACTIVE, POSITIVE_AMOUNT, WITHIN_AVAILABLE_BUDGET)
CAPACITY_GUARDS = (PARENT_BUDGET_ACTIVE, WITHIN_AVAILABLE_BUDGET)

PREPARER_OR_FINANCE = (Capability.PREPARE, Capability.APPROVE_FINANCE)

_S = CommitmentStatus


COMMITMENT_WORKFLOW = Workflow(
    name="commitment",
    description="Commitment (SPK) lifecycle",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in CommitmentStatus),
    transitions=(
        Transition(_S.DRAFT.value, _S.SUBMITTED.value, action="submit",
                   capabilities=(Capability.PREPARE,), guards=CAPACITY_GUARDS),
        Transition(_S.SUBMITTED.value, _S.APPROVED_UNIT.value, action="approve_unit",
                   capabilities=(Capability.APPROVE_UNIT,)),
        Transition(_S.APPROVED_UNIT.value, _S.APPROVED_FINANCE.value, action="approve_finance",
                   capabilities=(Capability.APPROVE_FINANCE,), guards=CAPACITY_GUARDS),
        Transition(_S.APPROVED_FINANCE.value, _S.COMPLETED.value, action="complete",
                   capabilities=PREPARER_OR_FINANCE),
        Transition(_S.DRAFT.value, _S.CANCELLED.value, action="cancel",
                   capabilities=PREPARER_OR_FINANCE),
        Transition(_S.APPROVED_UNIT.value, _S.CANCELLED.value, action="cancel",
                   capabilities=PREPARER_OR_FINANCE),
        Transition(_S.SUBMITTED.value, _S.REJECTED.value, action="reject",
                   capabilities=(Capability.APPROVE_UNIT,), guards=(REASON_PROVIDED,)),
        Transition(_S.APPROVED_UNIT.value, _S.REJECTED.value, action="reject",
                   capabilities=(Capability.APPROVE_FINANCE,), guards=(REASON_PROVIDED,)),
    ),
    terminal_states=(_S.COMPLETED.value, _S.CANCELLED.value, _S.REJECTED.value),
)

logger.debug("commitment_workflow_registered", extra={
    "workflow_name": COMMITMENT_WORKFLOW.name,
    "state_count": len(COMMITMENT_WORKFLOW.states),
    "transition_count": len(COMMITMENT_WORKFLOW.transitions),
})
