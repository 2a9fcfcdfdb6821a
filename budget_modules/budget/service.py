"""
Budget Lifecycle Service (``budget_modules.budget.service``).

Responsibility
--------------
Orchestrates the budget lifecycle -- creation, submission, resubmission
after a revision request, supervisor approval, admin activation,
rejection, revision requests and fiscal year-end closing -- against the
``BUDGET_WORKFLOW`` transition table.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``BudgetLifecycleService`` is the sole
public entry point for budget mutations.  Transition decisions are made
by ``WorkflowExecutor``; records live in ``EntityStore``.

Invariants enforced
-------------------
* Each public method holds the store's unit of work across its checks and
  its write, so a concurrent approver sees the new status.
* A budget is only ever SUBMITTED with a non-empty justification and an
  initial amount greater than zero.
* REJECTED and CLOSED are terminal.

Failure modes
-------------
* Refused operations return ``OperationResult`` with
  ``is_success == False`` and leave the store unchanged.
* Store invariant breaches (stale version, immutable field) raise.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from decimal import Decimal
from uuid import UUID, uuid4

from budget_config.schema import LedgerConfig
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.entities import (
    ApprovalStage,
    ApprovalStamp,
    Budget,
    BudgetDraft,
    BudgetStatus,
    Rejection,
    RevisionRequest,
)
from budget_kernel.domain.reference_data import FiscalYearStatus, ReferenceDataProvider
from budget_kernel.domain.results import (
    Failure,
    OperationResult,
    guard_failure,
    validation_failure,
)
from budget_kernel.domain.roles import Actor, Capability, has_capability
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.store import EntityStore
from budget_modules._lifecycle_helpers import (
    apply_transition,
    authorize_preparer,
    first_failure,
    not_found,
    require_fields,
    run_transition,
)
from budget_modules.budget.workflows import BUDGET_WORKFLOW
from budget_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.budget.service")

ENTITY_TYPE = "budget"


class BudgetLifecycleService:
    """
    Budget creation and approval chain.

    Contract
    --------
    * Every mutating method returns ``OperationResult[Budget]`` (or a
      tuple of budgets for ``close_fiscal_year``).
    * Master data is consulted only when a ``ReferenceDataProvider`` is
      injected.

    Non-goals
    ---------
    * Does NOT compute balances (``budget_engines.balance``).
    * Does NOT mutate master data.
    """

    def __init__(
        self,
        store: EntityStore,
        workflow_executor: WorkflowExecutor,
        clock: Clock | None = None,
        config: LedgerConfig | None = None,
        reference_data: ReferenceDataProvider | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ):
        self._store = store
        self._executor = workflow_executor
        self._clock = clock or SystemClock()
        self._config = config or LedgerConfig.with_defaults()
        self._reference_data = reference_data
        self._outcome_sink = outcome_sink

    # =========================================================================
    # Queries
    # =========================================================================

    def get_budget(self, budget_id: UUID) -> Budget | None:
        return self._store.find(Budget, budget_id)

    def list_budgets(
        self,
        fiscal_year: int | None = None,
        unit_id: str | None = None,
        status: BudgetStatus | None = None,
    ) -> tuple[Budget, ...]:
        return tuple(
            b for b in self._store.all(Budget)
            if (fiscal_year is None or b.fiscal_year == fiscal_year)
            and (unit_id is None or b.unit_id == unit_id)
            and (status is None or b.status is status)
        )

    # =========================================================================
    # Creation
    # =========================================================================

    def create_budget(
        self,
        draft: BudgetDraft,
        actor: Actor,
        submit: bool = False,
    ) -> OperationResult[Budget]:
        """Create a DRAFT budget, or a SUBMITTED one when ``submit`` is set."""
        with LogContext.bind(actor_id=actor.actor_id, unit_id=draft.unit_id):
            with self._store.unit_of_work():
                failure = first_failure(
                    lambda: require_fields(
                        ENTITY_TYPE,
                        unit_id=draft.unit_id,
                        rcc_id=draft.rcc_id,
                        coa=draft.coa,
                    ),
                    lambda: authorize_preparer(actor, draft.unit_id, ENTITY_TYPE),
                    lambda: self._check_master_data(draft),
                    lambda: self._check_draft_amount(draft.initial_amount),
                )
                if failure is not None:
                    return self._rejected("budget_create_rejected", failure)

                now = self._clock.now()
                budget = Budget(
                    id=uuid4(),
                    fiscal_year=draft.fiscal_year,
                    unit_id=draft.unit_id,
                    rcc_id=draft.rcc_id,
                    budget_type=draft.budget_type,
                    coa=draft.coa,
                    initial_amount=draft.initial_amount,
                    justification=draft.justification,
                    created_by=actor.actor_id,
                    created_at=now,
                    project_id=draft.project_id,
                    project_name=draft.project_name,
                    expenditure_class=draft.expenditure_class,
                )

                if submit:
                    result = run_transition(
                        self._executor, BUDGET_WORKFLOW, ENTITY_TYPE, budget, "submit", actor,
                        context=self._submission_context(budget),
                        outcome_sink=self._outcome_sink,
                    )
                    if not result.success:
                        return self._rejected("budget_create_rejected", result.failure)
                    budget = dataclasses.replace(
                        budget, status=BudgetStatus(result.new_state), submitted_at=now,
                    )

                self._store.add(budget)

            logger.info("budget_created", extra={
                "budget_id": str(budget.id),
                "fiscal_year": budget.fiscal_year,
                "budget_type": budget.budget_type.value,
                "initial_amount": str(budget.initial_amount),
                "status": budget.status.value,
            })
            return OperationResult.applied(budget)

    # =========================================================================
    # Transitions
    # =========================================================================

    def submit_budget(self, budget_id: UUID, actor: Actor) -> OperationResult[Budget]:
        def changes(budget: Budget) -> dict:
            return {"submitted_at": self._clock.now()}

        return self._transition(
            budget_id, "submit", actor, "budget_submitted",
            context=self._submission_context, changes=changes,
        )

    def resubmit_budget(
        self,
        budget_id: UUID,
        actor: Actor,
        *,
        initial_amount: Decimal | None = None,
        justification: str | None = None,
    ) -> OperationResult[Budget]:
        """Send a REVISE_REQUESTED budget back for approval, optionally amended."""

        def amended(budget: Budget) -> dict:
            fields: dict = {"submitted_at": self._clock.now()}
            if initial_amount is not None:
                fields["initial_amount"] = initial_amount
            if justification is not None:
                fields["justification"] = justification
            return fields

        def context(budget: Budget) -> dict:
            return {
                "amount": initial_amount if initial_amount is not None else budget.initial_amount,
                "justification": (
                    justification if justification is not None else budget.justification
                ),
            }

        return self._transition(
            budget_id, "resubmit", actor, "budget_resubmitted",
            context=context, changes=amended,
        )

    def approve_budget_by_unit(self, budget_id: UUID, actor: Actor) -> OperationResult[Budget]:
        return self._transition(
            budget_id, "approve_supervisor", actor, "budget_approved_by_unit",
            changes=lambda b: {"approved_supervisor": self._stamp(actor)},
        )

    def approve_budget_by_admin(self, budget_id: UUID, actor: Actor) -> OperationResult[Budget]:
        return self._transition(
            budget_id, "approve_admin", actor, "budget_activated",
            changes=lambda b: {"approved_admin": self._stamp(actor)},
        )

    def reject_budget(
        self, budget_id: UUID, actor: Actor, reason: str,
    ) -> OperationResult[Budget]:
        def changes(budget: Budget) -> dict:
            stage = (
                ApprovalStage.UNIT if budget.status is BudgetStatus.SUBMITTED
                else ApprovalStage.FINANCE
            )
            return {"rejection": Rejection(actor.actor_id, self._clock.now(), reason, stage)}

        return self._transition(
            budget_id, "reject", actor, "budget_rejected",
            context=lambda b: {"reason": reason}, changes=changes,
        )

    def request_budget_revision(
        self, budget_id: UUID, actor: Actor, notes: str,
    ) -> OperationResult[Budget]:
        return self._transition(
            budget_id, "request_revision", actor, "budget_revision_requested",
            context=lambda b: {"notes": notes},
            changes=lambda b: {
                "revision_request": RevisionRequest(actor.actor_id, self._clock.now(), notes),
            },
        )

    def close_budget(self, budget_id: UUID, actor: Actor) -> OperationResult[Budget]:
        return self._transition(
            budget_id, "close", actor, "budget_closed",
            changes=lambda b: {"closed_at": self._clock.now()},
        )

    def close_fiscal_year(
        self, fiscal_year: int, actor: Actor,
    ) -> OperationResult[tuple[Budget, ...]]:
        """Close every ACTIVE budget of ``fiscal_year``."""
        with LogContext.bind(actor_id=actor.actor_id):
            if not has_capability(actor, Capability.CLOSE_FISCAL_YEAR):
                return self._rejected("fiscal_year_close_rejected", guard_failure(
                    "UNAUTHORIZED_ACTOR",
                    f"Role '{actor.role.value}' may not close fiscal year {fiscal_year}",
                ))
            closed: list[Budget] = []
            with self._store.unit_of_work():
                for budget in self.list_budgets(fiscal_year=fiscal_year, status=BudgetStatus.ACTIVE):
                    result = apply_transition(
                        self._store, self._executor, BUDGET_WORKFLOW, ENTITY_TYPE,
                        budget, "close", actor, BudgetStatus,
                        changes={"closed_at": self._clock.now()},
                        outcome_sink=self._outcome_sink,
                    )
                    closed.append(result.unwrap())
            logger.info("fiscal_year_closed", extra={
                "fiscal_year": fiscal_year,
                "closed_count": len(closed),
            })
            return OperationResult.applied(tuple(closed))

    # =========================================================================
    # Internals
    # =========================================================================

    def _transition(
        self,
        budget_id: UUID,
        action: str,
        actor: Actor,
        event: str,
        *,
        context: Callable[[Budget], dict] | None = None,
        changes: Callable[[Budget], dict] | None = None,
    ) -> OperationResult[Budget]:
        with LogContext.bind(actor_id=actor.actor_id, entity_id=str(budget_id)):
            with self._store.unit_of_work():
                budget = self._store.find(Budget, budget_id)
                if budget is None:
                    return self._rejected(f"{ENTITY_TYPE}_{action}_rejected",
                                          not_found(ENTITY_TYPE, budget_id))
                result = apply_transition(
                    self._store, self._executor, BUDGET_WORKFLOW, ENTITY_TYPE,
                    budget, action, actor, BudgetStatus,
                    context=context(budget) if context else None,
                    changes=changes(budget) if changes else None,
                    outcome_sink=self._outcome_sink,
                )
            if not result.is_success:
                return self._rejected(f"{ENTITY_TYPE}_{action}_rejected", result.failure)
            logger.info(event, extra={
                "budget_id": str(budget_id),
                "status": result.value.status.value,
            })
            return result

    def _stamp(self, actor: Actor) -> ApprovalStamp:
        return ApprovalStamp(actor.actor_id, self._clock.now())

    @staticmethod
    def _submission_context(budget: Budget) -> dict:
        return {"amount": budget.initial_amount, "justification": budget.justification}

    @staticmethod
    def _check_draft_amount(amount: Decimal) -> Failure | None:
        if amount < 0:
            return validation_failure(
                "NEGATIVE_AMOUNT",
                f"Budget initial amount cannot be negative, got {amount}",
                entity_type=ENTITY_TYPE,
            )
        return None

    def _check_master_data(self, draft: BudgetDraft) -> Failure | None:
        if self._reference_data is None:
            return None
        if (
            self._config.block_closed_fiscal_years
            and self._reference_data.fiscal_year_status(draft.fiscal_year)
            is FiscalYearStatus.CLOSED
        ):
            return guard_failure(
                "FISCAL_YEAR_CLOSED",
                f"Fiscal year {draft.fiscal_year} is closed",
                entity_type=ENTITY_TYPE,
            )
        if not self._reference_data.is_coa_active(draft.coa):
            return validation_failure(
                "COA_INACTIVE",
                f"Chart of accounts code '{draft.coa}' is unknown or inactive",
                entity_type=ENTITY_TYPE,
            )
        return None

    @staticmethod
    def _rejected(event: str, failure: Failure) -> OperationResult[Budget]:
        logger.info(event, extra={
            "failure_kind": failure.kind.value,
            "failure_code": failure.code,
            "reason": failure.reason,
        })
        return OperationResult.rejected(failure)
