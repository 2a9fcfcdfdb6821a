"""Actual Payment Workflows.

Two-stage approval culminating in POSTED, the only status that counts as
actual spend.  Finance may cancel a posted payment, which releases it.
"""

from budget_kernel.domain.entities import ActualStatus
from budget_kernel.domain.results import FailureKind
from budget_kernel.domain.roles import Capability
from budget_kernel.domain.workflow import Guard, Transition, Workflow
from budget_kernel.logging_config import get_logger

logger = get_logger("modules.actual.workflows")

PARENT_BUDGET_ACTIVE = Guard(
    "parent_budget_active",
    "Budget {budget_id} is {budget_status}; payments need an active budget",
    failure_kind=FailureKind.GUARD_VIOLATION,
    code="BUDGET_NOT_ACTIVE",
)
POSITIVE_AMOUNT = Guard(
    "positive_amount",
    "Payment amount must be greater than zero, got {amount}",
    code="NON_POSITIVE_AMOUNT",
)
WITHIN_COMMITMENT_REMAINING = Guard(
    "within_commitment_remaining",
    "Payment amount {amount} exceeds remaining commitment {commitment_remaining} "
    "on commitment {commitment_id}",
    failure_kind=FailureKind.CAPACITY_EXCEEDED,
    code="EXCEEDS_COMMITMENT_REMAINING",
)
UNCOMMITTED_WITHIN_AVAILABLE_BUDGET = Guard(
    "uncommitted_within_available_budget",
    "Payment amount {amount} exceeds available budget {available_budget}",
    failure_kind=FailureKind.CAPACITY_EXCEEDED,
    code="EXCEEDS_AVAILABLE_BUDGET",
)
REASON_PROVIDED = Guard(
    "reason_provided",
    "A rejection reason is required",
    code="MISSING_FIELD",
)

CAPACITY_GUARDS = (
    PARENT_BUDGET_ACTIVE,
    WITHIN_COMMITMENT_REMAINING,
    UNCOMMITTED_WITHIN_AVAILABLE_BUDGET,
)
CREATION_GUARDS = (
    PARENT_BUDGET_ACTIVE,
    POSITIVE_AMOUNT,
    WITHIN_COMMITMENT_REMAINING,
    UNCOMMITTED_WITHIN_AVAILABLE_BUDGET,
)

_S = ActualStatus


ACTUAL_WORKFLOW = Workflow(
    name="actual_payment",
    description="Actual payment lifecycle ending in posting",
    initial_state=_S.DRAFT.value,
    states=tuple(s.value for s in ActualStatus),
    transitions=(
        Transition(_S.DRAFT.value, _S.SUBMITTED.value, action="submit",
                   capabilities=(Capability.PREPARE,), guards=CAPACITY_GUARDS),
        Transition(_S.SUBMITTED.value, _S.APPROVED_UNIT.value, action="approve_unit",
                   capabilities=(Capability.APPROVE_UNIT,)),
        Transition(_S.APPROVED_UNIT.value, _S.POSTED.value, action="post",
                   capabilities=(Capability.APPROVE_FINANCE,), guards=CAPACITY_GUARDS),
        Transition(_S.DRAFT.value, _S.CANCELLED.value, action="cancel",
                   capabilities=(Capability.PREPARE, Capability.APPROVE_FINANCE)),
        Transition(_S.POSTED.value, _S.CANCELLED.value, action="cancel",
                   capabilities=(Capability.APPROVE_FINANCE,)),
        Transition(_S.SUBMITTED.value, _S.REJECTED.value, action="reject",
                   capabilities=(Capability.APPROVE_UNIT,), guards=(REASON_PROVIDED,)),
        Transition(_S.APPROVED_UNIT.value, _S.REJECTED.value, action="reject",
                   capabilities=(Capability.APPROVE_FINANCE,), guards=(REASON_PROVIDED,)),
    ),
    terminal_states=(_S.CANCELLED.value, _S.REJECTED.value),
)

logger.debug("actual_workflow_registered", extra={
    "workflow_name": ACTUAL_WORKFLOW.name,
    "state_count": len(ACTUAL_WORKFLOW.states),
    "transition_count": len(ACTUAL_WORKFLOW.transitions),
})
