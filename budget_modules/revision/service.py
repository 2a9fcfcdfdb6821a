"""
Budget Revision Service (``budget_modules.revision.service``).

Responsibility
--------------
Creates and moves budget revisions through unit and finance approval.
The capacity rule -- a revised amount may never fall below what is
already committed plus actually spent -- is a transition guard, checked
at creation, at submission and again at finance approval, so no caller
can bypass it.

Invariants enforced
-------------------
* ``old_amount`` is the budget's approved amount when the revision was
  created; ``difference`` is derived from it.
* Only revisions of ACTIVE budgets can be created, submitted or
  finance-approved.
* APPROVED_FINANCE and REJECTED are terminal.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from typing import Any
from uuid import UUID, uuid4

from budget_engines.balance import approved_amount, committed_and_actual
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.entities import (
    ApprovalStage,
    ApprovalStamp,
    Budget,
    BudgetRevision,
    Rejection,
    RevisionDraft,
    RevisionStatus,
)
from budget_kernel.domain.results import Failure, OperationResult
from budget_kernel.domain.roles import Actor
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.store import EntityStore, StoreSnapshot
from budget_modules._lifecycle_helpers import (
    apply_transition,
    authorize_preparer,
    not_found,
    run_transition,
)
from budget_modules.revision.workflows import CREATION_GUARDS, REVISION_WORKFLOW
from budget_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.revision.service")

ENTITY_TYPE = "budget_revision"


def _capacity_context(
    snapshot: StoreSnapshot, budget: Budget, new_amount: Any, **extra: Any,
) -> dict[str, Any]:
    return {
        "budget_id": str(budget.id),
        "budget_status": budget.status.value,
        "amount": new_amount,
        "new_amount": new_amount,
        "committed_and_actual": committed_and_actual(snapshot, budget.id),
        **extra,
    }


class RevisionLifecycleService:
    """Budget revision creation and approval chain."""

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

    def get_revision(self, revision_id: UUID) -> BudgetRevision | None:
        return self._store.find(BudgetRevision, revision_id)

    def revisions_for_budget(self, budget_id: UUID) -> tuple[BudgetRevision, ...]:
        return self._store.snapshot().revisions_for(budget_id)

    def create_revision(
        self,
        draft: RevisionDraft,
        actor: Actor,
        submit: bool = False,
    ) -> OperationResult[BudgetRevision]:
        """Create a revision of an ACTIVE budget, snapshotting its approved amount."""
        with LogContext.bind(actor_id=actor.actor_id, entity_id=str(draft.budget_id)):
            with self._store.unit_of_work():
                snapshot = self._store.snapshot()
                budget = snapshot.budget(draft.budget_id)
                if budget is None:
                    return self._rejected(not_found("budget", draft.budget_id))

                failure = authorize_preparer(actor, budget.unit_id, ENTITY_TYPE)
                if failure is None:
                    failure = self._executor.check_guards(
                        CREATION_GUARDS,
                        _capacity_context(
                            snapshot, budget, draft.new_amount, reason=draft.reason,
                        ),
                        entity_type=ENTITY_TYPE,
                    )
                if failure is not None:
                    return self._rejected(failure)

                now = self._clock.now()
                revision = BudgetRevision(
                    id=uuid4(),
                    budget_id=budget.id,
                    unit_id=budget.unit_id,
                    old_amount=approved_amount(snapshot, budget),
                    new_amount=draft.new_amount,
                    reason=draft.reason,
                    created_by=actor.actor_id,
                    created_at=now,
                )
                if submit:
                    result = run_transition(
                        self._executor, REVISION_WORKFLOW, ENTITY_TYPE, revision, "submit",
                        actor,
                        context=self._approval_context(snapshot, budget, revision),
                        outcome_sink=self._outcome_sink,
                    )
                    if not result.success:
                        return self._rejected(result.failure)
                    revision = dataclasses.replace(
                        revision, status=RevisionStatus(result.new_state), submitted_at=now,
                    )
                self._store.add(revision)

            logger.info("revision_created", extra={
                "revision_id": str(revision.id),
                "budget_id": str(budget.id),
                "old_amount": str(revision.old_amount),
                "new_amount": str(revision.new_amount),
                "status": revision.status.value,
            })
            return OperationResult.applied(revision)

    def submit_revision(
        self, revision_id: UUID, actor: Actor,
    ) -> OperationResult[BudgetRevision]:
        return self._transition(
            revision_id, "submit", actor, "revision_submitted",
            with_capacity=True,
            changes={"submitted_at": self._clock.now()},
        )

    def approve_revision_by_unit(
        self, revision_id: UUID, actor: Actor,
    ) -> OperationResult[BudgetRevision]:
        return self._transition(
            revision_id, "approve_unit", actor, "revision_approved_by_unit",
            changes={"approved_unit": ApprovalStamp(actor.actor_id, self._clock.now())},
        )

    def approve_revision_by_finance(
        self, revision_id: UUID, actor: Actor,
    ) -> OperationResult[BudgetRevision]:
        """Finance approval; from here on the difference moves the balance."""
        return self._transition(
            revision_id, "approve_finance", actor, "revision_approved_by_finance",
            with_capacity=True,
            changes={"approved_finance": ApprovalStamp(actor.actor_id, self._clock.now())},
        )

    def reject_revision(
        self, revision_id: UUID, actor: Actor, reason: str,
    ) -> OperationResult[BudgetRevision]:
        def changes(revision: BudgetRevision) -> dict[str, Any]:
            stage = (
                ApprovalStage.FINANCE if revision.status is RevisionStatus.APPROVED_UNIT
                else ApprovalStage.UNIT
            )
            return {"rejection": Rejection(actor.actor_id, self._clock.now(), reason, stage)}

        return self._transition(
            revision_id, "reject", actor, "revision_rejected",
            context={"reason": reason}, changes=changes,
        )

    @staticmethod
    def _approval_context(
        snapshot: StoreSnapshot, budget: Budget, revision: BudgetRevision,
    ) -> dict[str, Any]:
        # Approved amount after this revision lands on the current approved amount
        new_approved = approved_amount(snapshot, budget) + revision.difference
        return _capacity_context(snapshot, budget, new_approved)

    def _transition(
        self,
        revision_id: UUID,
        action: str,
        actor: Actor,
        event: str,
        *,
        with_capacity: bool = False,
        context: dict[str, Any] | None = None,
        changes: dict[str, Any] | Callable[[BudgetRevision], dict[str, Any]] | None = None,
    ) -> OperationResult[BudgetRevision]:
        with LogContext.bind(actor_id=actor.actor_id, entity_id=str(revision_id)):
            with self._store.unit_of_work():
                revision = self._store.find(BudgetRevision, revision_id)
                if revision is None:
                    return self._rejected(not_found(ENTITY_TYPE, revision_id))
                if with_capacity:
                    snapshot = self._store.snapshot()
                    budget = snapshot.budget(revision.budget_id)
                    if budget is None:
                        return self._rejected(not_found("budget", revision.budget_id))
                    context = self._approval_context(snapshot, budget, revision)
                if callable(changes):
                    changes = changes(revision)
                result = apply_transition(
                    self._store, self._executor, REVISION_WORKFLOW, ENTITY_TYPE,
                    revision, action, actor, RevisionStatus,
                    context=context, changes=changes, outcome_sink=self._outcome_sink,
                )
            if not result.is_success:
                return self._rejected(result.failure)
            logger.info(event, extra={
                "revision_id": str(revision_id),
                "status": result.value.status.value,
            })
            return result

    @staticmethod
    def _rejected(failure: Failure) -> OperationResult[BudgetRevision]:
        logger.info("revision_operation_rejected", extra={
            "failure_kind": failure.kind.value,
            "failure_code": failure.code,
            "reason": failure.reason,
        })
        return OperationResult.rejected(failure)
