"""
Operation results (``budget_kernel.domain.results``).

Every lifecycle operation returns an ``OperationResult``.  A refused
operation carries a ``Failure`` that names one of three kinds:

* ``validation``         -- missing field or non-positive amount, detected
                            before any mutation.
* ``guard_violation``    -- status or actor does not permit the transition.
* ``capacity_exceeded``  -- amount is larger than the budget or commitment
                            has room for.

Failures are deterministic given the same store state and input; nothing is
retryable.  A refused operation leaves the store unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from budget_kernel.exceptions import (
    CapacityExceededError,
    GuardViolationError,
    OperationRejectedError,
    ValidationError,
)

T = TypeVar("T")


class FailureKind(str, Enum):
    VALIDATION = "validation"
    GUARD_VIOLATION = "guard_violation"
    CAPACITY_EXCEEDED = "capacity_exceeded"


_EXCEPTION_FOR_KIND: dict[FailureKind, type[OperationRejectedError]] = {
    FailureKind.VALIDATION: ValidationError,
    FailureKind.GUARD_VIOLATION: GuardViolationError,
    FailureKind.CAPACITY_EXCEEDED: CapacityExceededError,
}


@dataclass(frozen=True)
class Failure:
    """Why an operation was refused."""

    kind: FailureKind
    code: str
    reason: str
    entity_type: str | None = None
    entity_id: str | None = None

    def to_exception(self) -> OperationRejectedError:
        exc_type = _EXCEPTION_FOR_KIND[self.kind]
        return exc_type(
            self.reason,
            self.code,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
        )


def validation_failure(code: str, reason: str, **refs: str | None) -> Failure:
    return Failure(FailureKind.VALIDATION, code, reason, **refs)


def guard_failure(code: str, reason: str, **refs: str | None) -> Failure:
    return Failure(FailureKind.GUARD_VIOLATION, code, reason, **refs)


def capacity_failure(code: str, reason: str, **refs: str | None) -> Failure:
    return Failure(FailureKind.CAPACITY_EXCEEDED, code, reason, **refs)


class OperationStatus(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Result of a ledger operation."""

    status: OperationStatus
    value: T | None = None
    failure: Failure | None = None

    @property
    def is_success(self) -> bool:
        return self.status is OperationStatus.APPLIED

    @classmethod
    def applied(cls, value: T) -> OperationResult[T]:
        return cls(status=OperationStatus.APPLIED, value=value)

    @classmethod
    def rejected(cls, failure: Failure) -> OperationResult[T]:
        return cls(status=OperationStatus.REJECTED, failure=failure)

    def unwrap(self) -> T:
        """Return the value, or raise the typed exception for the failure."""
        if self.failure is not None:
            raise self.failure.to_exception()
        return self.value  # type: ignore[return-value]
