"""
In-memory entity store (``budget_kernel.store``).

Responsibility
--------------
Holds the four ledger tables (budgets, revisions, commitments, actual
payments) keyed by ``UUID`` in insertion order, and hands immutable
snapshots to the engines.  Pure data: no lifecycle behaviour lives here.

Architecture position
---------------------
**Kernel** -- imports only ``budget_kernel.domain`` and
``budget_kernel.exceptions``.

Invariants enforced
-------------------
* Append-only: after ``add`` the only way to change a record is
  ``replace``, and ``replace`` may only touch the entity type's
  ``MUTABLE_FIELDS``.
* Optimistic versioning: a replacement must carry ``stored.version + 1``.
* Single logical writer: ``unit_of_work()`` holds a re-entrant lock so a
  lifecycle operation's guard checks and its write are atomic.
* No derived totals are stored; balances are recomputed from snapshots.

Failure modes
-------------
* ``DuplicateEntityError``  -- ``add`` with an id already stored.
* ``EntityNotFoundError``   -- ``get``/``replace`` with an unknown id.
* ``OptimisticLockError``   -- ``replace`` with a stale version.
* ``ImmutableFieldError``   -- ``replace`` changing an immutable field.
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TypeVar
from uuid import UUID

from budget_kernel.domain.entities import (
    ActualPayment,
    ActualStatus,
    Budget,
    BudgetRevision,
    Commitment,
)
from budget_kernel.exceptions import (
    DuplicateEntityError,
    EntityNotFoundError,
    ImmutableFieldError,
    OptimisticLockError,
)
from budget_kernel.logging_config import get_logger

logger = get_logger("store")

Entity = Budget | BudgetRevision | Commitment | ActualPayment
E = TypeVar("E", Budget, BudgetRevision, Commitment, ActualPayment)

ENTITY_TYPE_NAMES: dict[type, str] = {
    Budget: "budget",
    BudgetRevision: "budget_revision",
    Commitment: "commitment",
    ActualPayment: "actual_payment",
}


def entity_type_name(entity_type: type) -> str:
    return ENTITY_TYPE_NAMES[entity_type]


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of every table at one point in time."""

    budgets: tuple[Budget, ...] = ()
    revisions: tuple[BudgetRevision, ...] = ()
    commitments: tuple[Commitment, ...] = ()
    actuals: tuple[ActualPayment, ...] = ()

    def budget(self, budget_id: UUID) -> Budget | None:
        for b in self.budgets:
            if b.id == budget_id:
                return b
        return None

    def commitment(self, commitment_id: UUID) -> Commitment | None:
        for c in self.commitments:
            if c.id == commitment_id:
                return c
        return None

    def revisions_for(self, budget_id: UUID) -> tuple[BudgetRevision, ...]:
        return tuple(r for r in self.revisions if r.budget_id == budget_id)

    def commitments_for(self, budget_id: UUID) -> tuple[Commitment, ...]:
        return tuple(c for c in self.commitments if c.budget_id == budget_id)

    def actuals_for(self, budget_id: UUID) -> tuple[ActualPayment, ...]:
        return tuple(a for a in self.actuals if a.budget_id == budget_id)

    def posted_actuals_for_commitment(
        self, commitment_id: UUID,
    ) -> tuple[ActualPayment, ...]:
        return tuple(
            a for a in self.actuals
            if a.commitment_id == commitment_id and a.status is ActualStatus.POSTED
        )


class EntityStore:
    """
    Mutex-guarded in-memory tables.

    Contract
    --------
    * ``get`` raises on unknown ids; ``find`` returns ``None``.
    * ``replace`` validates version and mutable fields before writing.
    * Records are frozen dataclasses, so reads never need copying.
    """

    def __init__(self) -> None:
        self._tables: dict[type, dict[UUID, Entity]] = {
            t: {} for t in ENTITY_TYPE_NAMES
        }
        self._lock = threading.RLock()

    @contextmanager
    def unit_of_work(self) -> Iterator[EntityStore]:
        """Serialize a read-check-write sequence against this store."""
        with self._lock:
            yield self

    def add(self, entity: E) -> E:
        table = self._table(type(entity))
        with self._lock:
            if entity.id in table:
                raise DuplicateEntityError(
                    entity_type_name(type(entity)), str(entity.id),
                )
            table[entity.id] = entity
        logger.debug("entity_added", extra={
            "entity_type": entity_type_name(type(entity)),
            "entity_id": str(entity.id),
        })
        return entity

    def get(self, entity_type: type[E], entity_id: UUID) -> E:
        found = self.find(entity_type, entity_id)
        if found is None:
            raise EntityNotFoundError(entity_type_name(entity_type), str(entity_id))
        return found

    def find(self, entity_type: type[E], entity_id: UUID) -> E | None:
        with self._lock:
            return self._table(entity_type).get(entity_id)  # type: ignore[return-value]

    def all(self, entity_type: type[E]) -> tuple[E, ...]:
        with self._lock:
            return tuple(self._table(entity_type).values())  # type: ignore[arg-type]

    def replace(self, entity: E) -> E:
        """Swap in a new version of an existing record."""
        entity_type = type(entity)
        type_name = entity_type_name(entity_type)
        table = self._table(entity_type)
        with self._lock:
            stored = table.get(entity.id)
            if stored is None:
                raise EntityNotFoundError(type_name, str(entity.id))
            if entity.version != stored.version + 1:
                raise OptimisticLockError(
                    type_name, str(entity.id),
                    expected_version=entity.version - 1,
                    actual_version=stored.version,
                )
            changed = tuple(
                f.name for f in dataclasses.fields(entity)
                if f.name not in entity_type.MUTABLE_FIELDS
                and getattr(entity, f.name) != getattr(stored, f.name)
            )
            if changed:
                raise ImmutableFieldError(type_name, str(entity.id), changed)
            table[entity.id] = entity
        logger.debug("entity_replaced", extra={
            "entity_type": type_name,
            "entity_id": str(entity.id),
            "version": entity.version,
        })
        return entity

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return StoreSnapshot(
                budgets=tuple(self._tables[Budget].values()),  # type: ignore[arg-type]
                revisions=tuple(self._tables[BudgetRevision].values()),  # type: ignore[arg-type]
                commitments=tuple(self._tables[Commitment].values()),  # type: ignore[arg-type]
                actuals=tuple(self._tables[ActualPayment].values()),  # type: ignore[arg-type]
            )

    def _table(self, entity_type: type) -> dict[UUID, Entity]:
        try:
            return self._tables[entity_type]
        except KeyError:
            raise TypeError(f"Not a ledger entity type: {entity_type!r}") from None
