"""Budget Revision Workflows.

Two-stage approval (unit, then finance) for changes to an active budget's
approved amount.  Only APPROVED_FINANCE revisions move the balance.
"""

from budget_kernel.domain.entities import RevisionStatus
from budget_kernel.domain.results import FailureKind
from budget_kernel.domain.roles import Capability
from budget_kernel.domain.workflow import Guard, Transition, Workflow
from budget_kernel.logging_config import get_logger

logger = get_logger("modules.revision.workflows")

PARENT_BUDGET_ACTIVE = Guard(
    "parent_budget_active",
    "Budget {budget_id} is {budget_status}; only active budgets can be revised",
    failure_kind=FailureKind.GUARD_VIOLATION,
    code="BUDGET_NOT_ACTIVE",
)
POSITIVE_NEW_AMOUNT = Guard(
    "positive_amount",
    "Revised amount must be greater than zero, got {amount}",
    code="NON_POSITIVE_AMOUNT",
)
REASON_PROVIDED = Guard(
    "reason_provided",
    "A reason is required",
    code="MISSING_FIELD",
)
ABOVE_COMMITTED_AND_ACTUAL = Guard(
    "revision_above_committed_and_actual",
    "Revised amount {new_amount} is below committed plus actual {committed_and_actual}",
    failure_kind=FailureKind.CAPACITY_EXCEEDED,
    code="BELOW_COMMITTED_AND_ACTUAL",
)

CREATION_GUARDS = (
    PARENT_BUDGET_ACTIVE,
    POSITIVE_NEW_AMOUNT,
    REASON_PROVIDED,
    ABOVE_COMMITTED_AND_ACTUAL,
)
CAPACITY_GUARDS = (PARENT_BUDGET_ACTIVE, ABOVE_COMMITTED_AND_ACTUAL)

_S = RevisionStatus


REVISION_WORKFLOW = Workflow(
    name="budget_revision",
    description="Budget revision two-stage approval",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in RevisionStatus),
    transitions=(
        Transition(_S.DRAFT.value, _S.SUBMITTED.value, action="submit",
                   capabilities=(Capability.PREPARE,), guards=CAPACITY_GUARDS),
        Transition(_S.SUBMITTED.value, _S.APPROVED_UNIT.value, action="approve_unit",
                   capabilities=(Capability.APPROVE_UNIT,)),
        Transition(_S.APPROVED_UNIT.value, _S.APPROVED_FINANCE.value, action="approve_finance",
                   capabilities=(Capability.APPROVE_FINANCE,), guards=CAPACITY_GUARDS),
        Transition(_S.SUBMITTED.value, _S.REJECTED.value, action="reject",
                   capabilities=(Capability.APPROVE_UNIT,), guards=(REASON_PROVIDED,)),
        Transition(_S.APPROVED_UNIT.value, _S.REJECTED.value, action="reject",
                   capabilities=(Capability.APPROVE_FINANCE,), guards=(REASON_PROVIDED,)),
    ),
    terminal_states=(_S.APPROVED_FINANCE.value, _S.REJECTED.value),
)

logger.debug("revision_workflow_registered", extra={
    "workflow_name": REVISION_WORKFLOW.name,
    "state_count": len(REVISION_WORKFLOW.states),
    "transition_count": len(REVISION_WORKFLOW.transitions),
})
