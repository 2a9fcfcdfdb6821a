"""
Actual Payment Service (``budget_modules.actual.service``).

Responsibility
--------------
Records invoices paid against ACTIVE budgets and moves them through unit
approval, finance posting, cancellation or rejection.

Invariants enforced
-------------------
* A payment backed by a commitment never exceeds what remains of that
  commitment (its amount less actuals already posted against it).
* A payment without a commitment never exceeds the budget's available
  balance.
* Project budgets require a commitment when
  ``LedgerConfig.project_requires_commitment`` is set.
* The referenced commitment belongs to the same budget and is
  APPROVED_FINANCE at creation, at submission and at posting; a payment
  against a completed or cancelled commitment cannot be posted.
* Only POSTED payments count as actual spend; cancelling a posted payment
  releases it.

Failure modes
-------------
* Refused operations return ``OperationResult`` with ``is_success ==
  False``; the store is unchanged.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from typing import Any
from uuid import UUID, uuid4

from budget_config.schema import LedgerConfig
from budget_engines.balance import commitment_remaining, compute_balance
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.entities import (
    ActualDraft,
    ActualPayment,
    ActualStatus,
    ApprovalStage,
    ApprovalStamp,
    Budget,
    BudgetType,
    CommitmentStatus,
    Rejection,
)
from budget_kernel.domain.results import (
    Failure,
    FailureKind,
    OperationResult,
    guard_failure,
    validation_failure,
)
from budget_kernel.domain.roles import Actor
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.store import EntityStore, StoreSnapshot
from budget_modules._lifecycle_helpers import (
    apply_transition,
    authorize_preparer,
    first_failure,
    not_found,
    require_fields,
    run_transition,
)
from budget_modules.actual.workflows import ACTUAL_WORKFLOW, CREATION_GUARDS
from budget_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.actual.service")

ENTITY_TYPE = "actual_payment"


def _capacity_context(
    snapshot: StoreSnapshot, budget: Budget, amount: Any, commitment_id: UUID | None,
) -> dict[str, Any]:
    context: dict[str, Any] = {
        "budget_id": str(budget.id),
        "budget_status": budget.status.value,
        "amount": amount,
        "commitment_id": str(commitment_id) if commitment_id is not None else None,
        "commitment_remaining": None,
        "available_budget": None,
    }
    commitment = snapshot.commitment(commitment_id) if commitment_id is not None else None
    if commitment is not None:
        context["commitment_remaining"] = commitment_remaining(snapshot, commitment)
    else:
        context["available_budget"] = compute_balance(
            snapshot, budget_id=budget.id,
        ).available_budget
    return context


class ActualLifecycleService:
    """Invoice recording, approval, posting and cancellation."""

    def __init__(
        self,
        store: EntityStore,
        workflow_executor: WorkflowExecutor,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self._store = store
        self._executor = workflow_executor
        self._clock = clock or SystemClock()
        self._config = config or LedgerConfig.with_defaults()
        self._outcome_sink = outcome_sink

    def get_actual(self, actual_id: UUID) -> ActualPayment | None:
        return self._store.find(ActualPayment, actual_id)

    def actuals_for_budget(self, budget_id: UUID) -> tuple[ActualPayment, ...]:
        return self._store.snapshot().actuals_for(budget_id)

    def create_actual(
        self,
        draft: ActualDraft,
        actor: Actor,
        submit: bool = False,
    ) -> OperationResult[ActualPayment]:
        """Record a DRAFT payment, or a SUBMITTED one when ``submit`` is set."""
        with LogContext.bind(actor_id=actor.actor_id, entity_id=str(draft.budget_id)):
            with self._store.unit_of_work():
                snapshot = self._store.snapshot()
                budget = snapshot.budget(draft.budget_id)
                if budget is None:
                    return self._rejected(not_found("budget", draft.budget_id))

                failure = first_failure(
                    lambda: require_fields(
                        ENTITY_TYPE,
                        invoice_number=draft.invoice_number,
                        vendor_name=draft.vendor_name,
                        payment_method=draft.payment_method,
                    ),
                    lambda: authorize_preparer(actor, budget.unit_id, ENTITY_TYPE),
                    lambda: self._check_commitment(snapshot, budget, draft.commitment_id),
                    lambda: self._executor.check_guards(
                        CREATION_GUARDS,
                        _capacity_context(snapshot, budget, draft.amount, draft.commitment_id),
                        entity_type=ENTITY_TYPE,
                    ),
                )
                if failure is not None:
                    return self._rejected(failure)

                now = self._clock.now()
                actual = ActualPayment(
                    id=uuid4(),
                    budget_id=budget.id,
                    unit_id=budget.unit_id,
                    invoice_number=draft.invoice_number,
                    invoice_date=draft.invoice_date,
                    vendor_name=draft.vendor_name,
                    amount=draft.amount,
                    payment_method=draft.payment_method,
                    description=draft.description,
                    created_by=actor.actor_id,
                    created_at=now,
                    commitment_id=draft.commitment_id,
                )
                if submit:
                    result = run_transition(
                        self._executor, ACTUAL_WORKFLOW, ENTITY_TYPE, actual, "submit", actor,
                        context=_capacity_context(
                            snapshot, budget, actual.amount, actual.commitment_id,
                        ),
                        outcome_sink=self._outcome_sink,
                    )
                    if not result.success:
                        return self._rejected(result.failure)
                    actual = dataclasses.replace(
                        actual, status=ActualStatus(result.new_state), submitted_at=now,
                    )
                self._store.add(actual)

            logger.info("actual_created", extra={
                "actual_id": str(actual.id),
                "budget_id": str(budget.id),
                "commitment_id": str(actual.commitment_id) if actual.commitment_id else None,
                "invoice_number": actual.invoice_number,
                "amount": str(actual.amount),
                "status": actual.status.value,
            })
            return OperationResult.applied(actual)

    def submit_actual(self, actual_id: UUID, actor: Actor) -> OperationResult[ActualPayment]:
        return self._transition(
            actual_id, "submit", actor, "actual_submitted",
            with_capacity=True,
            changes={"submitted_at": self._clock.now()},
        )

    def approve_actual_by_unit(
        self, actual_id: UUID, actor: Actor,
    ) -> OperationResult[ActualPayment]:
        return self._transition(
            actual_id, "approve_unit", actor, "actual_approved_by_unit",
            changes={"approved_unit": ApprovalStamp(actor.actor_id, self._clock.now())},
        )

    def post_actual(self, actual_id: UUID, actor: Actor) -> OperationResult[ActualPayment]:
        """Finance approval; the payment now counts as actual spend."""
        now = self._clock.now()
        return self._transition(
            actual_id, "post", actor, "actual_posted",
            with_capacity=True,
            changes={"approved_finance": ApprovalStamp(actor.actor_id, now), "posted_at": now},
        )

    def cancel_actual(self, actual_id: UUID, actor: Actor) -> OperationResult[ActualPayment]:
        return self._transition(
            actual_id, "cancel", actor, "actual_cancelled",
            changes={"cancelled_at": self._clock.now()},
        )

    def reject_actual(
        self, actual_id: UUID, actor: Actor, reason: str,
    ) -> OperationResult[ActualPayment]:
        def changes(actual: ActualPayment) -> dict[str, Any]:
            stage = (
                ApprovalStage.FINANCE if actual.status is ActualStatus.APPROVED_UNIT
                else ApprovalStage.UNIT
            )
            return {"rejection": Rejection(actor.actor_id, self._clock.now(), reason, stage)}

        return self._transition(
            actual_id, "reject", actor, "actual_rejected",
            context={"reason": reason}, changes=changes,
        )

    def _check_commitment(
        self, snapshot: StoreSnapshot, budget: Budget, commitment_id: UUID | None,
    ) -> Failure | None:
        if commitment_id is None:
            if (
                budget.budget_type is BudgetType.PROJECT
                and self._config.project_requires_commitment
            ):
                return validation_failure(
                    "COMMITMENT_REQUIRED",
                    f"Payments against project budget {budget.id} must reference a commitment",
                    entity_type=ENTITY_TYPE,
                )
            return None
        commitment = snapshot.commitment(commitment_id)
        if commitment is None:
            return not_found("commitment", commitment_id)
        if commitment.budget_id != budget.id:
            return validation_failure(
                "COMMITMENT_MISMATCH",
                f"Commitment {commitment_id} belongs to budget {commitment.budget_id}, "
                f"not {budget.id}",
                entity_type=ENTITY_TYPE,
            )
        if commitment.status is not CommitmentStatus.APPROVED_FINANCE:
            return guard_failure(
                "COMMITMENT_NOT_APPROVED",
                f"Commitment {commitment_id} is {commitment.status.value}; "
                f"payments need a finance-approved commitment",
                entity_type=ENTITY_TYPE,
            )
        return None

    def _transition(
        self,
        actual_id: UUID,
        action: str,
        actor: Actor,
        event: str,
        *,
        with_capacity: bool = False,
        context: dict[str, Any] | None = None,
        changes: dict[str, Any] | Callable[[ActualPayment], dict[str, Any]] | None = None,
    ) -> OperationResult[ActualPayment]:
        with LogContext.bind(actor_id=actor.actor_id, entity_id=str(actual_id)):
            with self._store.unit_of_work():
                actual = self._store.find(ActualPayment, actual_id)
                if actual is None:
                    return self._rejected(not_found(ENTITY_TYPE, actual_id))
                if with_capacity:
                    snapshot = self._store.snapshot()
                    budget = snapshot.budget(actual.budget_id)
                    if budget is None:
                        return self._rejected(not_found("budget", actual.budget_id))
                    failure = self._check_commitment(snapshot, budget, actual.commitment_id)
                    if failure is not None:
                        return self._rejected(failure)
                    context = _capacity_context(
                        snapshot, budget, actual.amount, actual.commitment_id,
                    )
                if callable(changes):
                    changes = changes(actual)
                result = apply_transition(
                    self._store, self._executor, ACTUAL_WORKFLOW, ENTITY_TYPE,
                    actual, action, actor, ActualStatus,
                    context=context, changes=changes, outcome_sink=self._outcome_sink,
                )
            if not result.is_success:
                return self._rejected(result.failure)
            logger.info(event, extra={
                "actual_id": str(actual_id),
                "status": result.value.status.value,
            })
            return result

    @staticmethod
    def _rejected(failure: Failure) -> OperationResult[ActualPayment]:
        log = logger.warning if failure.kind is FailureKind.CAPACITY_EXCEEDED else logger.info
        log("actual_operation_rejected", extra={
            "failure_kind": failure.kind.value,
            "failure_code": failure.code,
            "reason": failure.reason,
        })
        return OperationResult.rejected(failure)
