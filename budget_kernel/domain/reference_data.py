"""
Master-data lookups (``budget_kernel.domain.reference_data``).

The ledger only *reads* master data (units, chart of accounts, fiscal
years) by reference; it never mutates it.  ``ReferenceDataProvider`` is the
pluggable read interface; ``budget_services.reference_data`` ships a
dict-backed implementation.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol


class FiscalYearStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    CLOSED = "closed"


class ReferenceDataProvider(Protocol):
    """Pluggable interface for read-only master data lookups."""

    def fiscal_year_status(self, year: int) -> FiscalYearStatus | None:
        """Return the status of a fiscal year, or None if unknown."""
        ...

    def unit_name(self, unit_id: str) -> str | None:
        """Return the display name of a unit, or None if unknown."""
        ...

    def is_coa_active(self, code: str) -> bool:
        """Check that a chart-of-accounts code exists and is active."""
        ...
