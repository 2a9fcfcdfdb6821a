"""
Canonical workflow types (``budget_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the entity state machines.  Every entity module
(budget, revision, commitment, actual) declares its transition table with
these types so that Guard, Transition and Workflow are defined once.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``store``, services, engines or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``(from_state, action)`` pairs are unique, so lookup is deterministic.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from budget_kernel.domain.results import Failure, FailureKind
from budget_kernel.domain.roles import Capability


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.  ``description`` is a message
    template formatted with the evaluation context when the guard fails.
    Non-goals: does not evaluate the condition -- the executor does.
    """
    name: str
    description: str
    failure_kind: FailureKind = FailureKind.VALIDATION
    code: str = "GUARD_NOT_SATISFIED"


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    Contract: frozen.  The actor must hold at least one of
    ``capabilities`` (within its scope) and every guard must pass.
    """
    from_state: str
    to_state: str
    action: str
    capabilities: tuple[Capability, ...]
    guards: tuple[Guard, ...] = ()


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for an entity lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow '{self.name}': initial state '{self.initial_state}' "
                "is not a declared state"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            for state in (t.from_state, t.to_state):
                if state not in self.states:
                    raise ValueError(
                        f"Workflow '{self.name}': transition '{t.action}' "
                        f"references unknown state '{state}'"
                    )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow '{self.name}': terminal state '{t.from_state}' "
                    f"has outgoing transition '{t.action}'"
                )
            key = (t.from_state, t.action)
            if key in seen:
                raise ValueError(
                    f"Workflow '{self.name}': duplicate transition "
                    f"'{t.action}' from '{t.from_state}'"
                )
            seen.add(key)

    def find(self, from_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def states_allowing(self, action: str) -> tuple[str, ...]:
        return tuple(t.from_state for t in self.transitions if t.action == action)


@dataclass(frozen=True)
class TransitionResult:
    """Result of executing a workflow transition."""

    success: bool
    new_state: str | None = None
    failure: Failure | None = None
    reason: str = ""
