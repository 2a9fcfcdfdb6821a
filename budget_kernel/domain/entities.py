"""
Ledger entities (``budget_kernel.domain.entities``).

Responsibility
--------------
Frozen dataclass records for the four nouns of the ledger -- budgets,
budget revisions, commitments (SPK) and actual payments -- plus the drafts
callers hand in to create them and the approval metadata recorded along
the way.

Architecture position
---------------------
**Kernel domain layer** -- pure data with ZERO behaviour beyond derived
read-only properties.  Lifecycle rules live in ``budget_modules``; balances
live in ``budget_engines.balance``.

Invariants enforced
-------------------
* All records are ``frozen=True``; the store replaces whole records.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Children (revision, commitment, actual) hold a non-owning ID reference to
  their parent.  No aggregate figure is ever stored on a parent.
* ``MUTABLE_FIELDS`` lists the only fields that may change after creation
  (status and approval metadata); the store rejects any other change.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar
from uuid import UUID


# =========================================================================
# Statuses
# =========================================================================


class BudgetStatus(str, Enum):
    """Budget lifecycle states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED_SUPERVISOR = "approved_supervisor"
    ACTIVE = "active"
    CLOSED = "closed"
    REJECTED = "rejected"
    REVISE_REQUESTED = "revise_requested"


class RevisionStatus(str, Enum):
    """Budget revision lifecycle states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED_UNIT = "approved_unit"
    APPROVED_FINANCE = "approved_finance"
    REJECTED = "rejected"


class CommitmentStatus(str, Enum):
    """Commitment (SPK) lifecycle states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED_UNIT = "approved_unit"
    APPROVED_FINANCE = "approved_finance"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class ActualStatus(str, Enum):
    """Actual payment lifecycle states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED_UNIT = "approved_unit"
    POSTED = "posted"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class BudgetType(str, Enum):
    PROJECT = "project"
    ROUTINE = "routine"


class ExpenditureClass(str, Enum):
    """Operating vs capital spend; orthogonal to BudgetType."""

    OPEX = "opex"
    CAPEX = "capex"


class ApprovalStage(str, Enum):
    UNIT = "unit"
    FINANCE = "finance"


# =========================================================================
# Approval metadata
# =========================================================================


@dataclass(frozen=True)
class ApprovalStamp:
    """Who approved a stage, and when."""
    actor_id: str
    at: datetime


@dataclass(frozen=True)
class Rejection:
    """A permanent rejection at a given approval stage."""
    actor_id: str
    at: datetime
    reason: str
    stage: ApprovalStage


@dataclass(frozen=True)
class RevisionRequest:
    """A request for the preparer to rework and resubmit a budget."""
    actor_id: str
    at: datetime
    notes: str


# =========================================================================
# Entities
# =========================================================================


@dataclass(frozen=True)
class Budget:
    """An allocation of money to a unit for a fiscal year."""

    MUTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({
        "status",
        "version",
        "initial_amount",
        "justification",
        "submitted_at",
        "approved_supervisor",
        "approved_admin",
        "rejection",
        "revision_request",
        "closed_at",
    })

    id: UUID
    fiscal_year: int
    unit_id: str
    rcc_id: str
    budget_type: BudgetType
    coa: str
    initial_amount: Decimal
    justification: str
    created_by: str
    created_at: datetime
    status: BudgetStatus = BudgetStatus.DRAFT
    project_id: str | None = None
    project_name: str | None = None
    expenditure_class: ExpenditureClass | None = None
    submitted_at: datetime | None = None
    approved_supervisor: ApprovalStamp | None = None
    approved_admin: ApprovalStamp | None = None
    rejection: Rejection | None = None
    revision_request: RevisionRequest | None = None
    closed_at: datetime | None = None
    version: int = 1


@dataclass(frozen=True)
class BudgetRevision:
    """A request to change an active budget's approved amount."""

    MUTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({
        "status",
        "version",
        "submitted_at",
        "approved_unit",
        "approved_finance",
        "rejection",
    })

    id: UUID
    budget_id: UUID
    unit_id: str
    old_amount: Decimal
    new_amount: Decimal
    reason: str
    created_by: str
    created_at: datetime
    status: RevisionStatus = RevisionStatus.DRAFT
    submitted_at: datetime | None = None
    approved_unit: ApprovalStamp | None = None
    approved_finance: ApprovalStamp | None = None
    rejection: Rejection | None = None
    version: int = 1

    @property
    def difference(self) -> Decimal:
        return self.new_amount - self.old_amount


@dataclass(frozen=True)
class Commitment:
    """A vendor commitment (SPK) reserving budget ahead of payment."""

    MUTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({
        "status",
        "version",
        "submitted_at",
        "approved_unit",
        "approved_finance",
        "completed_at",
        "cancelled_at",
        "rejection",
    })

    id: UUID
    budget_id: UUID
    unit_id: str
    fiscal_year: int
    spk_number: str
    vendor_name: str
    vendor_contact: str
    description: str
    amount: Decimal
    coa: str
    start_date: date
    end_date: date
    created_by: str
    created_at: datetime
    status: CommitmentStatus = CommitmentStatus.DRAFT
    submitted_at: datetime | None = None
    approved_unit: ApprovalStamp | None = None
    approved_finance: ApprovalStamp | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    rejection: Rejection | None = None
    version: int = 1


@dataclass(frozen=True)
class ActualPayment:
    """A realized payment, optionally against a commitment."""

    MUTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({
        "status",
        "version",
        "submitted_at",
        "approved_unit",
        "approved_finance",
        "posted_at",
        "cancelled_at",
        "rejection",
    })

    id: UUID
    budget_id: UUID
    unit_id: str
    invoice_number: str
    invoice_date: date
    vendor_name: str
    amount: Decimal
    payment_method: str
    description: str
    created_by: str
    created_at: datetime
    commitment_id: UUID | None = None
    status: ActualStatus = ActualStatus.DRAFT
    submitted_at: datetime | None = None
    approved_unit: ApprovalStamp | None = None
    approved_finance: ApprovalStamp | None = None
    posted_at: datetime | None = None
    cancelled_at: datetime | None = None
    rejection: Rejection | None = None
    version: int = 1


# =========================================================================
# Drafts (caller input for creation)
# =========================================================================


@dataclass(frozen=True)
class BudgetDraft:
    fiscal_year: int
    unit_id: str
    rcc_id: str
    budget_type: BudgetType
    coa: str
    initial_amount: Decimal
    justification: str
    project_id: str | None = None
    project_name: str | None = None
    expenditure_class: ExpenditureClass | None = None


@dataclass(frozen=True)
class RevisionDraft:
    budget_id: UUID
    new_amount: Decimal
    reason: str


@dataclass(frozen=True)
class CommitmentDraft:
    budget_id: UUID
    spk_number: str
    vendor_name: str
    description: str
    amount: Decimal
    start_date: date
    end_date: date
    vendor_contact: str = ""
    coa: str | None = None  # defaults to the budget's COA


@dataclass(frozen=True)
class ActualDraft:
    budget_id: UUID
    invoice_number: str
    invoice_date: date
    vendor_name: str
    amount: Decimal
    payment_method: str
    description: str = ""
    commitment_id: UUID | None = None
