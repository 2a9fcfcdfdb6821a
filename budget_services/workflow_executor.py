"""
budget_services.workflow_executor -- Workflow transition execution.

Responsibility:
    Executes entity state transitions with role/scope enforcement and
    guard evaluation.  Thin coordinator -- transition tables live in the
    entity modules, guard evaluation logic lives in GuardExecutor, role
    predicates live in ``budget_kernel.domain.roles``.

Architecture position:
    Services layer.  May import from budget_engines/ (pure engines) and
    budget_kernel/ (domain, store, logging).

Invariants enforced:
    - Checks run in a fixed order: transition exists, actor authorized
      within unit scope, every guard passes.  The first failure wins.
    - A failed check never mutates anything; the executor only decides.
    - Every outcome emits exactly one ``workflow_transition`` record.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Callable
from uuid import UUID

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.results import Failure, guard_failure
from budget_kernel.domain.roles import Actor, can_act_on_unit, has_capability
from budget_kernel.domain.workflow import Guard, TransitionResult, Workflow
from budget_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.workflow_executor")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_UNAUTHORIZED = "unauthorized"
OUTCOME_GUARD_FAILED = "guard_failed"


def _emit_workflow_trace(
    workflow_name: str,
    action: str,
    entity_type: str,
    entity_id: UUID | str,
    from_state: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    transition_ts: str,
    to_state: str | None = None,
    failure_code: str | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> None:
    """Emit a structured workflow transition record."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "transition_ts": transition_ts,
        "workflow": workflow_name,
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "from_state": from_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if to_state is not None:
        record["to_state"] = to_state
    if failure_code is not None:
        record["failure_code"] = failure_code
    record.update(LogContext.get_all())
    # LogRecord reserves "message"; keep it out of extra
    extra_for_log = {k: v for k, v in record.items() if k != "message"}
    logger.info("workflow_transition", extra=extra_for_log)
    record["message"] = "workflow_transition"
    if outcome_sink is not None:
        outcome_sink(record)


# ---------------------------------------------------------------------------
# Guard evaluation
# ---------------------------------------------------------------------------


def _get_attr(context: Any, key: str, default: Any = None) -> Any:
    """Get attribute from context (object or dict)."""
    if context is None:
        return default
    if hasattr(context, "get") and callable(getattr(context, "get")):
        return context.get(key, default)
    return getattr(context, key, default)


def _as_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _text_provided(key: str) -> Callable[[Any], bool]:
    def check(context: Any) -> bool:
        value = _get_attr(context, key)
        return isinstance(value, str) and bool(value.strip())
    return check


def _positive_amount(context: Any) -> bool:
    amount = _as_decimal(_get_attr(context, "amount"))
    return amount is not None and amount > 0


def _within_available_budget(context: Any) -> bool:
    """Amount must not exceed the parent budget's available balance."""
    amount = _as_decimal(_get_attr(context, "amount"))
    available = _as_decimal(_get_attr(context, "available_budget"))
    if amount is None or available is None:
        return False
    return amount <= available


def _within_commitment_remaining(context: Any) -> bool:
    """Amount must fit the referenced commitment; no commitment means pass."""
    remaining = _as_decimal(_get_attr(context, "commitment_remaining"))
    if remaining is None:
        return True
    amount = _as_decimal(_get_attr(context, "amount"))
    return amount is not None and amount <= remaining


def _uncommitted_within_available_budget(context: Any) -> bool:
    """Payments without a commitment must fit the budget's available balance."""
    if _get_attr(context, "commitment_id") is not None:
        return True
    return _within_available_budget(context)


def _revision_above_committed_and_actual(context: Any) -> bool:
    """New approved amount may not fall below committed plus actual."""
    new_amount = _as_decimal(_get_attr(context, "new_amount"))
    floor = _as_decimal(_get_attr(context, "committed_and_actual"))
    if new_amount is None or floor is None:
        return False
    return new_amount >= floor


def _parent_budget_active(context: Any) -> bool:
    status = _get_attr(context, "budget_status")
    return status is not None and str(getattr(status, "value", status)) == "active"


class GuardExecutor:
    """Evaluates workflow guards against context.

    Guards are declared on transitions (name + description). This executor
    holds the evaluation logic per guard name and is called by
    WorkflowExecutor before allowing a transition.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[Any], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[Any], bool]) -> None:
        """Register an evaluator for a guard by name."""
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: Any = None) -> bool:
        """Evaluate a guard against context. Returns True if guard passes."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning(
                "guard_no_evaluator",
                extra={"guard_name": guard.name},
            )
            return False
        try:
            return bool(fn(context))
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "guard_evaluation_error",
                extra={"guard_name": guard.name, "error": str(e)},
            )
            return False


def default_guard_executor() -> GuardExecutor:
    """Return a GuardExecutor with the ledger's evaluators registered."""
    ex = GuardExecutor()
    ex.register("justification_provided", _text_provided("justification"))
    ex.register("reason_provided", _text_provided("reason"))
    ex.register("notes_provided", _text_provided("notes"))
    ex.register("positive_amount", _positive_amount)
    ex.register("within_available_budget", _within_available_budget)
    ex.register("within_commitment_remaining", _within_commitment_remaining)
    ex.register("uncommitted_within_available_budget", _uncommitted_within_available_budget)
    ex.register("revision_above_committed_and_actual", _revision_above_committed_and_actual)
    ex.register("parent_budget_active", _parent_budget_active)
    return ex


class _MissingKeyDict(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def _render(template: str, context: Mapping[str, Any] | None) -> str:
    return template.format_map(_MissingKeyDict(context or {}))


# ---------------------------------------------------------------------------
# WorkflowExecutor
# ---------------------------------------------------------------------------


class WorkflowExecutor:
    """Executes workflow transitions with capability and guard enforcement.

    Contract:
        ``execute_transition`` returns a ``TransitionResult``; on failure
        ``result.failure`` carries the kind, code and a rendered reason.
        The caller owns the write and must hold the store's unit of work
        across the decision and the write.
    """

    def __init__(
        self,
        guard_executor: GuardExecutor | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._guard_executor = guard_executor or default_guard_executor()
        self._clock = clock or SystemClock()

    def execute_transition(
        self,
        workflow: Workflow,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        action: str,
        actor: Actor,
        unit_id: str,
        context: dict[str, Any] | None = None,
        outcome_sink: Callable[[dict], None] | None = None,
    ) -> TransitionResult:
        """Decide whether ``actor`` may apply ``action`` to the entity."""
        t0 = time.monotonic()

        def trace(outcome: str, reason: str, *, to_state=None, failure_code=None):
            _emit_workflow_trace(
                workflow_name=workflow.name,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                from_state=current_state,
                outcome=outcome,
                reason=reason,
                duration_ms=(time.monotonic() - t0) * 1000,
                transition_ts=self._clock.now().isoformat(),
                to_state=to_state,
                failure_code=failure_code,
                outcome_sink=outcome_sink,
            )

        def refuse(outcome: str, failure: Failure) -> TransitionResult:
            trace(outcome, failure.reason, failure_code=failure.code)
            return TransitionResult(success=False, failure=failure, reason=failure.reason)

        refs = {"entity_type": entity_type, "entity_id": str(entity_id)}

        # 1. Find the matching transition
        transition = workflow.find(current_state, action)
        if transition is None:
            allowed = workflow.states_allowing(action)
            if allowed:
                reason = (
                    f"Cannot {action} {entity_type} in status '{current_state}'; "
                    f"allowed from: {', '.join(allowed)}"
                )
            else:
                reason = f"Action '{action}' is not defined for {entity_type}"
            return refuse(
                OUTCOME_NO_TRANSITION,
                guard_failure("INVALID_TRANSITION", reason, **refs),
            )

        # 2. Actor must hold a capability that reaches the entity's unit
        held = [c for c in transition.capabilities if has_capability(actor, c)]
        if not held:
            return refuse(
                OUTCOME_UNAUTHORIZED,
                guard_failure(
                    "UNAUTHORIZED_ACTOR",
                    f"Role '{actor.role.value}' may not {action} {entity_type}",
                    **refs,
                ),
            )
        if not any(can_act_on_unit(actor, c, unit_id) for c in held):
            return refuse(
                OUTCOME_UNAUTHORIZED,
                guard_failure(
                    "OUT_OF_UNIT_SCOPE",
                    f"Actor '{actor.actor_id}' of unit '{actor.unit_id}' may not "
                    f"{action} {entity_type} of unit '{unit_id}'",
                    **refs,
                ),
            )

        # 3. Every guard must pass
        failure = self.check_guards(
            transition.guards, context, entity_type=entity_type, entity_id=entity_id,
        )
        if failure is not None:
            return refuse(OUTCOME_GUARD_FAILED, failure)

        reason = f"{current_state} -> {transition.to_state}"
        trace(OUTCOME_SUCCESS, reason, to_state=transition.to_state)
        return TransitionResult(success=True, new_state=transition.to_state, reason=reason)

    def check_guards(
        self,
        guards: tuple[Guard, ...],
        context: dict[str, Any] | None,
        *,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
    ) -> Failure | None:
        """Return the first failing guard as a Failure, or None."""
        ctx = context or {}
        for guard in guards:
            if not self._guard_executor.evaluate(guard, ctx):
                return Failure(
                    kind=guard.failure_kind,
                    code=guard.code,
                    reason=_render(guard.description, ctx),
                    entity_type=entity_type,
                    entity_id=str(entity_id) if entity_id is not None else None,
                )
        return None
