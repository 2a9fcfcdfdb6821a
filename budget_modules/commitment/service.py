"""
Commitment Service (``budget_modules.commitment.service``).

Responsibility
--------------
Creates SPK commitments against ACTIVE budgets and moves them through
unit approval, finance approval, completion, cancellation or rejection.

Invariants enforced
-------------------
* A commitment may never reserve more than the parent budget's available
  balance; checked at creation, submission and finance approval.
* ``end_date`` is never before ``start_date``.
* Completing or cancelling a commitment releases its capacity, since only
  APPROVED_FINANCE commitments are counted as committed.

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

from budget_engines.balance import compute_balance
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.entities import (
    ApprovalStage,
    ApprovalStamp,
    Budget,
    Commitment,
    CommitmentDraft,
    CommitmentStatus,
    Rejection,
)
from budget_kernel.domain.results import (
    Failure,
    FailureKind,
    OperationResult,
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
from budget_modules.commitment.workflows import COMMITMENT_WORKFLOW, CREATION_GUARDS
from budget_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.commitment.service")

ENTITY_TYPE = "commitment"


def _capacity_context(snapshot: StoreSnapshot, budget: Budget, amount: Any) -> dict[str, Any]:
    return {
        "budget_id": str(budget.id),
        "budget_status": budget.status.value,
        "amount": amount,
        "available_budget": compute_balance(snapshot, budget_id=budget.id).available_budget,
    }


class CommitmentLifecycleService:
    """SPK creation, approval chain, completion and cancellation."""

    def __init__(
        self,
        store: EntityStore,
        workflow_executor: WorkflowExecutor,
        clock: Clock | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self._store = store
        self._executor = workflow_executor
        self._clock = clock or SystemClock()
        self._outcome_sink = outcome_sink

    def get_commitment(self, commitment_id: UUID) -> Commitment | None:
        return self._store.find(Commitment, commitment_id)

    def commitments_for_budget(self, budget_id: UUID) -> tuple[Commitment, ...]:
        return self._store.snapshot().commitments_for(budget_id)

    def create_commitment(
        self,
        draft: CommitmentDraft,
        actor: Actor,
        submit: bool = False,
    ) -> OperationResult[Commitment]:
        with LogContext.bind(actor_id=actor.actor_id, entity_id=str(draft.budget_id)):
            with self._store.unit_of_work():
                snapshot = self._store.snapshot()
                budget = snapshot.budget(draft.budget_id)
                if budget is None:
                    return self._rejected(not_found("budget", draft.budget_id))

                failure = first_failure(
                    lambda: require_fields(
                        ENTITY_TYPE,
                        spk_number=draft.spk_number,
                        vendor_name=draft.vendor_name,
                    ),
                    lambda: authorize_preparer(actor, budget.unit_id, ENTITY_TYPE),
                    lambda: self._check_dates(draft),
                    lambda: self._executor.check_guards(
                        CREATION_GUARDS,
                        _capacity_context(snapshot, budget, draft.amount),
                        entity_type=ENTITY_TYPE,
                    ),
                )
                if failure is not None:
                    return self._rejected(failure)

                now = self._clock.now()
                commitment = Commitment(
                    id=uuid4(),
                    budget_id=budget.id,
                    unit_id=budget.unit_id,
                    fiscal_year=budget.fiscal_year,
                    spk_number=draft.spk_number,
                    vendor_name=draft.vendor_name,
                    vendor_contact=draft.vendor_contact,
                    description=draft.description,
                    amount=draft.amount,
                    coa=draft.coa or budget.coa,
                    start_date=draft.start_date,
                    end_date=draft.end_date,
                    created_by=actor.actor_id,
                    created_at=now,
                )
                if submit:
                    result = run_transition(
                        self._executor, COMMITMENT_WORKFLOW, ENTITY_TYPE, commitment, "submit",
                        actor,
                        context=_capacity_context(snapshot, budget, commitment.amount),
                        outcome_sink=self._outcome_sink,
                    )
                    if not result.success:
                        return self._rejected(result.failure)
                    commitment = dataclasses.replace(
                        commitment, status=CommitmentStatus(result.new_state), submitted_at=now,
                    )
                self._store.add(commitment)

            logger.info("commitment_created", extra={
                "commitment_id": str(commitment.id),
                "budget_id": str(budget.id),
                "spk_number": commitment.spk_number,
                "amount": str(commitment.amount),
                "status": commitment.status.value,
            })
            return OperationResult.applied(commitment)

    def submit_commitment(self, commitment_id: UUID, actor: Actor) -> OperationResult[Commitment]:
        return self._transition(
            commitment_id, "submit", actor, "commitment_submitted",
            with_capacity=True,
            changes={"submitted_at": self._clock.now()},
        )

    def approve_commitment_by_unit(
        self, commitment_id: UUID, actor: Actor,
    ) -> OperationResult[Commitment]:
        return self._transition(
            commitment_id, "approve_unit", actor, "commitment_approved_by_unit",
            changes={"approved_unit": ApprovalStamp(actor.actor_id, self._clock.now())},
        )

    def approve_commitment_by_finance(
        self, commitment_id: UUID, actor: Actor,
    ) -> OperationResult[Commitment]:
        """Finance approval; the amount now counts as committed."""
        return self._transition(
            commitment_id, "approve_finance", actor, "commitment_approved_by_finance",
            with_capacity=True,
            changes={"approved_finance": ApprovalStamp(actor.actor_id, self._clock.now())},
        )

    def complete_commitment(
        self, commitment_id: UUID, actor: Actor,
    ) -> OperationResult[Commitment]:
        return self._transition(
            commitment_id, "complete", actor, "commitment_completed",
            changes={"completed_at": self._clock.now()},
        )

    def cancel_commitment(
        self, commitment_id: UUID, actor: Actor,
    ) -> OperationResult[Commitment]:
        return self._transition(
            commitment_id, "cancel", actor, "commitment_cancelled",
            changes={"cancelled_at": self._clock.now()},
        )

    def reject_commitment(
        self, commitment_id: UUID, actor: Actor, reason: str,
    ) -> OperationResult[Commitment]:
        def changes(commitment: Commitment) -> dict[str, Any]:
            stage = (
                ApprovalStage.FINANCE if commitment.status is CommitmentStatus.APPROVED_UNIT
                else ApprovalStage.UNIT
            )
            return {"rejection": Rejection(actor.actor_id, self._clock.now(), reason, stage)}

        return self._transition(
            commitment_id, "reject", actor, "commitment_rejected",
            context={"reason": reason}, changes=changes,
        )

    def _transition(
        self,
        commitment_id: UUID,
        action: str,
        actor: Actor,
        event: str,
        *,
        with_capacity: bool = False,
        context: dict[str, Any] | None = None,
        changes: dict[str, Any] | Callable[[Commitment], dict[str, Any]] | None = None,
    ) -> OperationResult[Commitment]:
        with LogContext.bind(actor_id=actor.actor_id, entity_id=str(commitment_id)):
            with self._store.unit_of_work():
                commitment = self._store.find(Commitment, commitment_id)
                if commitment is None:
                    return self._rejected(not_found(ENTITY_TYPE, commitment_id))
                if with_capacity:
                    snapshot = self._store.snapshot()
                    budget = snapshot.budget(commitment.budget_id)
                    if budget is None:
                        return self._rejected(not_found("budget", commitment.budget_id))
                    context = _capacity_context(snapshot, budget, commitment.amount)
                if callable(changes):
                    changes = changes(commitment)
                result = apply_transition(
                    self._store, self._executor, COMMITMENT_WORKFLOW, ENTITY_TYPE,
                    commitment, action, actor, CommitmentStatus,
                    context=context, changes=changes, outcome_sink=self._outcome_sink,
                )
            if not result.is_success:
                return self._rejected(result.failure)
            logger.info(event, extra={
                "commitment_id": str(commitment_id),
                "status": result.value.status.value,
            })
            return result

    @staticmethod
    def _check_dates(draft: CommitmentDraft) -> Failure | None:
        if draft.end_date < draft.start_date:
            return validation_failure(
                "INVALID_DATE_RANGE",
                f"Commitment end date {draft.end_date} is before start date {draft.start_date}",
                entity_type=ENTITY_TYPE,
            )
        return None

    @staticmethod
    def _rejected(failure: Failure) -> OperationResult[Commitment]:
        log = logger.warning if failure.kind is FailureKind.CAPACITY_EXCEEDED else logger.info
        log("commitment_operation_rejected", extra={
            "failure_kind": failure.kind.value,
            "failure_code": failure.code,
            "reason": failure.reason,
        })
        return OperationResult.rejected(failure)
