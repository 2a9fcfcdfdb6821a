"""
Typed Exception Hierarchy for the Budget Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to tell a capacity breach from an unauthorized approver
without parsing message strings.  Every error therefore has:
  1. a TYPED exception class (catch by type, not message)
  2. a CODE class attribute (machine-readable, API-safe)
  3. structured DATA attributes (not just a message string)

Expected business failures (a rejected transition, an over-budget commitment)
are NOT raised by the lifecycle services.  They come back as
``OperationResult`` values carrying a ``Failure``; ``OperationResult.unwrap()``
turns such a failure into the matching exception below for callers that
prefer raising.  Everything else here signals a programming error or a broken
store invariant.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BudgetKernelError (base)
    |
    +-- OperationRejectedError
    |   +-- ValidationError
    |   +-- GuardViolationError
    |   +-- CapacityExceededError
    |
    +-- StoreError
    |   +-- EntityNotFoundError
    |   +-- DuplicateEntityError
    |   +-- ImmutableFieldError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Rejected        | VALIDATION_ERROR            | Missing field / non-positive amount
                | GUARD_VIOLATION             | Status or role does not permit action
                | CAPACITY_EXCEEDED           | Amount exceeds budget/commitment room
----------------|-----------------------------|-----------------------------------------
Store           | ENTITY_NOT_FOUND            | Unknown entity id
                | DUPLICATE_ENTITY            | Entity id already stored
                | IMMUTABLE_FIELD             | Non-status field changed after creation
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Stale entity version written
----------------|-----------------------------|-----------------------------------------
Config          | CONFIGURATION_ERROR         | Invalid or unreadable ledger config
"""

from __future__ import annotations


class BudgetKernelError(Exception):
    """
    Base exception for all budget kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BUDGET_KERNEL_ERROR"


# Rejected operations (raised only via OperationResult.unwrap)


class OperationRejectedError(BudgetKernelError):
    """A lifecycle operation was refused; the store is unchanged."""

    code: str = "OPERATION_REJECTED"

    def __init__(
        self,
        reason: str,
        failure_code: str,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ):
        self.reason = reason
        self.failure_code = failure_code
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"[{failure_code}] {reason}")


class ValidationError(OperationRejectedError):
    """Missing required field or non-positive amount."""

    code: str = "VALIDATION_ERROR"


class GuardViolationError(OperationRejectedError):
    """Transition not permitted from the current status or by this actor."""

    code: str = "GUARD_VIOLATION"


class CapacityExceededError(OperationRejectedError):
    """Requested amount exceeds the available budget or commitment remainder."""

    code: str = "CAPACITY_EXCEEDED"


# Store exceptions


class StoreError(BudgetKernelError):
    """Base exception for entity store errors."""

    code: str = "STORE_ERROR"


class EntityNotFoundError(StoreError):
    """Entity with given ID was not found."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class DuplicateEntityError(StoreError):
    """Entity with given ID already exists."""

    code: str = "DUPLICATE_ENTITY"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} already exists: {entity_id}")


class ImmutableFieldError(StoreError):
    """
    A field outside the entity's mutable set was changed.

    Entities are append-only: after creation only status and approval
    metadata may change.
    """

    code: str = "IMMUTABLE_FIELD"

    def __init__(self, entity_type: str, entity_id: str, fields: tuple[str, ...]):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.fields = fields
        super().__init__(
            f"Cannot modify immutable field(s) {', '.join(fields)} "
            f"on {entity_type} {entity_id}"
        )


# Concurrency exceptions


class ConcurrencyError(BudgetKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int,
        actual_version: int,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            f"expected stored version {expected_version}, found {actual_version}"
        )


# Configuration exceptions


class ConfigurationError(BudgetKernelError):
    """Ledger configuration is missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(message if source is None else f"{source}: {message}")
