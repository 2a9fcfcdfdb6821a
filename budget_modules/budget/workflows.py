"""Budget Workflows.

State machine for the budget lifecycle: preparation, supervisor approval,
admin activation, rejection, revision requests and year-end closing.
"""

from budget_kernel.domain.entities import BudgetStatus
from budget_kernel.domain.roles import Capability
from budget_kernel.domain.workflow import Guard, Transition, Workflow
from budget_kernel.logging_config import get_logger

logger = get_logger("modules.budget.workflows")

PREPARE = (Capability.PREPARE,)
APPROVE_UNIT = (Capability.APPROVE_UNIT,)
APPROVE_FINANCE = (Capability.APPROVE_FINANCE,)

JUSTIFICATION_PROVIDED = Guard(
    "justification_provided",
    "Budget justification is required before submission",
    code="MISSING_FIELD",
)
POSITIVE_AMOUNT = Guard(
    "positive_amount",
    "Budget initial amount must be greater than zero, got {amount}",
    code="NON_POSITIVE_AMOUNT",
)
REASON_PROVIDED = Guard(
    "reason_provided",
    "A rejection reason is required",
    code="MISSING_FIELD",
)
NOTES_PROVIDED = Guard(
    "notes_provided",
    "Revision notes are required",
    code="MISSING_FIELD",
)

SUBMISSION_GUARDS = (JUSTIFICATION_PROVIDED, POSITIVE_AMOUNT)

_S = BudgetStatus


BUDGET_WORKFLOW = Workflow(
    name="budget",
    description="Budget lifecycle with two-stage approval",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in BudgetStatus),
    transitions=(
        Transition(_S.DRAFT.value, _S.SUBMITTED.value, action="submit",
                   capabilities=PREPARE, guards=SUBMISSION_GUARDS),
        Transition(_S.REVISE_REQUESTED.value, _S.SUBMITTED.value, action="resubmit",
                   capabilities=PREPARE, guards=SUBMISSION_GUARDS),
        Transition(_S.SUBMITTED.value, _S.APPROVED_SUPERVISOR.value, action="approve_supervisor",
                   capabilities=APPROVE_UNIT),
        Transition(_S.APPROVED_SUPERVISOR.value, _S.ACTIVE.value, action="approve_admin",
                   capabilities=APPROVE_FINANCE),
        Transition(_S.SUBMITTED.value, _S.REJECTED.value, action="reject",
                   capabilities=APPROVE_UNIT, guards=(REASON_PROVIDED,)),
        Transition(_S.APPROVED_SUPERVISOR.value, _S.REJECTED.value, action="reject",
                   capabilities=APPROVE_FINANCE, guards=(REASON_PROVIDED,)),
        Transition(_S.SUBMITTED.value, _S.REVISE_REQUESTED.value, action="request_revision",
                   capabilities=APPROVE_UNIT, guards=(NOTES_PROVIDED,)),
        Transition(_S.APPROVED_SUPERVISOR.value, _S.REVISE_REQUESTED.value,
                   action="request_revision",
                   capabilities=APPROVE_FINANCE, guards=(NOTES_PROVIDED,)),
        Transition(_S.ACTIVE.value, _S.CLOSED.value, action="close",
                   capabilities=(Capability.CLOSE_FISCAL_YEAR,)),
    ),
    terminal_states=(_S.REJECTED.value, _S.CLOSED.value),
)

logger.debug("budget_workflow_registered", extra={
    "workflow_name": BUDGET_WORKFLOW.name,
    "state_count": len(BUDGET_WORKFLOW.states),
    "transition_count": len(BUDGET_WORKFLOW.transitions),
})
