"""
Actor roles and capabilities (``budget_kernel.domain.roles``).

Responsibility
--------------
The single closed role model of the ledger.  Three roles take part in the
two-stage approval chain:

* ``operator``      -- prepares budgets, revisions, commitments and actuals
                       for their own unit.
* ``supervisor``    -- first-stage (unit) approver, scoped to their unit.
* ``admin_budget``  -- second-stage (finance) approver, corporate-wide.

Capabilities are derived from the role; nothing else in the code base
compares role strings.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Operators and supervisors always carry a ``unit_id``.
* ``prepare`` and ``approve_unit`` are unit-scoped; ``approve_finance``,
  ``close_fiscal_year`` and ``view_all`` are corporate-wide.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActorRole(str, Enum):
    """Roles participating in the approval chain."""

    OPERATOR = "operator"
    SUPERVISOR = "supervisor"
    ADMIN_BUDGET = "admin_budget"


class Capability(str, Enum):
    """What an actor may do."""

    PREPARE = "prepare"
    APPROVE_UNIT = "approve_unit"
    APPROVE_FINANCE = "approve_finance"
    CLOSE_FISCAL_YEAR = "close_fiscal_year"
    VIEW_ALL = "view_all"


class CapabilityScope(str, Enum):
    UNIT = "unit"
    CORPORATE = "corporate"


ROLE_CAPABILITIES: dict[ActorRole, frozenset[Capability]] = {
    ActorRole.OPERATOR: frozenset({Capability.PREPARE}),
    ActorRole.SUPERVISOR: frozenset({Capability.APPROVE_UNIT}),
    ActorRole.ADMIN_BUDGET: frozenset({
        Capability.APPROVE_FINANCE,
        Capability.CLOSE_FISCAL_YEAR,
        Capability.VIEW_ALL,
    }),
}

_CAPABILITY_SCOPES: dict[Capability, CapabilityScope] = {
    Capability.PREPARE: CapabilityScope.UNIT,
    Capability.APPROVE_UNIT: CapabilityScope.UNIT,
    Capability.APPROVE_FINANCE: CapabilityScope.CORPORATE,
    Capability.CLOSE_FISCAL_YEAR: CapabilityScope.CORPORATE,
    Capability.VIEW_ALL: CapabilityScope.CORPORATE,
}


def capability_scope(capability: Capability) -> CapabilityScope:
    return _CAPABILITY_SCOPES[capability]


@dataclass(frozen=True)
class Actor:
    """The person invoking a ledger operation."""

    actor_id: str
    role: ActorRole
    unit_id: str | None = None

    def __post_init__(self) -> None:
        if not self.actor_id:
            raise ValueError("actor_id must be non-empty")
        if self.role in (ActorRole.OPERATOR, ActorRole.SUPERVISOR) and not self.unit_id:
            raise ValueError(f"{self.role.value} actors must belong to a unit")


def has_capability(actor: Actor, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[actor.role]


def can_act_on_unit(actor: Actor, capability: Capability, unit_id: str) -> bool:
    """True when the actor holds ``capability`` and it reaches ``unit_id``."""
    if not has_capability(actor, capability):
        return False
    if capability_scope(capability) is CapabilityScope.CORPORATE:
        return True
    return actor.unit_id == unit_id


def can_view_unit(actor: Actor, unit_id: str) -> bool:
    if has_capability(actor, Capability.VIEW_ALL):
        return True
    return actor.unit_id == unit_id
