"""Dict-backed master data provider.

Satisfies ``ReferenceDataProvider`` from ``budget_kernel.domain.reference_data``.
Can be replaced with a database-backed implementation; the ledger only reads.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from budget_kernel.domain.reference_data import FiscalYearStatus


class StaticReferenceData:
    """Read-only lookups over in-memory master data."""

    def __init__(
        self,
        fiscal_years: Mapping[int, FiscalYearStatus] | None = None,
        units: Mapping[str, str] | None = None,
        active_coa: Iterable[str] | None = None,
    ) -> None:
        self._fiscal_years = dict(fiscal_years or {})
        self._units = dict(units or {})
        self._active_coa = frozenset(active_coa or ())

    def fiscal_year_status(self, year: int) -> FiscalYearStatus | None:
        return self._fiscal_years.get(year)

    def unit_name(self, unit_id: str) -> str | None:
        return self._units.get(unit_id)

    def is_coa_active(self, code: str) -> bool:
        return code in self._active_coa
