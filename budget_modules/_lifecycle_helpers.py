"""
Shared helpers for module lifecycle flows.

Used by budget_modules/*/service.py to reduce duplication when loading
records, authorizing creation, running workflow transitions and writing
the transitioned record back to the store.

Architecture: Modules layer. Imports only from budget_kernel and
budget_services.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, TypeVar
from uuid import UUID

from budget_kernel.domain.results import (
    Failure,
    OperationResult,
    guard_failure,
    validation_failure,
)
from budget_kernel.domain.roles import Actor, Capability, can_act_on_unit, has_capability
from budget_kernel.domain.workflow import TransitionResult, Workflow
from budget_kernel.store import EntityStore
from budget_services.workflow_executor import WorkflowExecutor

E = TypeVar("E")


def not_found(entity_type: str, entity_id: UUID) -> Failure:
    return validation_failure(
        "ENTITY_NOT_FOUND",
        f"{entity_type} {entity_id} does not exist",
        entity_type=entity_type,
        entity_id=str(entity_id),
    )


def authorize_preparer(actor: Actor, unit_id: str, entity_type: str) -> Failure | None:
    """Creation needs the prepare capability within ``unit_id``."""
    if not has_capability(actor, Capability.PREPARE):
        return guard_failure(
            "UNAUTHORIZED_ACTOR",
            f"Role '{actor.role.value}' may not create {entity_type}",
            entity_type=entity_type,
        )
    if not can_act_on_unit(actor, Capability.PREPARE, unit_id):
        return guard_failure(
            "OUT_OF_UNIT_SCOPE",
            f"Actor '{actor.actor_id}' of unit '{actor.unit_id}' may not create "
            f"{entity_type} for unit '{unit_id}'",
            entity_type=entity_type,
        )
    return None


def require_fields(entity_type: str, **values: Any) -> Failure | None:
    """First blank required field as a MISSING_FIELD failure."""
    for name, value in values.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            return validation_failure(
                "MISSING_FIELD",
                f"{entity_type} requires '{name}'",
                entity_type=entity_type,
            )
    return None


def require_positive(entity_type: str, name: str, amount: Decimal) -> Failure | None:
    if amount <= 0:
        return validation_failure(
            "NON_POSITIVE_AMOUNT",
            f"{entity_type} {name} must be greater than zero, got {amount}",
            entity_type=entity_type,
        )
    return None


def first_failure(*checks: Callable[[], Failure | None]) -> Failure | None:
    """Run checks lazily in order; return the first failure."""
    for check in checks:
        failure = check()
        if failure is not None:
            return failure
    return None


def run_transition(
    executor: WorkflowExecutor,
    workflow: Workflow,
    entity_type: str,
    entity: Any,
    action: str,
    actor: Actor,
    *,
    context: dict[str, Any] | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> TransitionResult:
    """Ask the executor whether ``action`` may be applied to ``entity``."""
    return executor.execute_transition(
        workflow=workflow,
        entity_type=entity_type,
        entity_id=entity.id,
        current_state=entity.status.value,
        action=action,
        actor=actor,
        unit_id=entity.unit_id,
        context=context,
        outcome_sink=outcome_sink,
    )


def apply_transition(
    store: EntityStore,
    executor: WorkflowExecutor,
    workflow: Workflow,
    entity_type: str,
    entity: E,
    action: str,
    actor: Actor,
    status_type: type[Enum],
    *,
    context: dict[str, Any] | None = None,
    changes: dict[str, Any] | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> OperationResult[E]:
    """Run the transition and, on success, write the next version.

    The caller must hold ``store.unit_of_work()`` so the decision and the
    write see the same state.
    """
    result = run_transition(
        executor, workflow, entity_type, entity, action, actor,
        context=context, outcome_sink=outcome_sink,
    )
    if not result.success:
        return OperationResult.rejected(result.failure)
    updated = dataclasses.replace(
        entity,
        status=status_type(result.new_state),
        version=entity.version + 1,
        **(changes or {}),
    )
    store.replace(updated)
    return OperationResult.applied(updated)
