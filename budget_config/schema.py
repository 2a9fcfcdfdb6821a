"""
Ledger configuration schema (``budget_config.schema``).

Frozen dataclass produced by ``budget_config.loader`` from YAML.  Every
field has a default so an empty document yields the stock configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from budget_kernel.logging_config import get_logger

logger = get_logger("config.schema")


@dataclass(frozen=True)
class LedgerConfig:
    """Tunable rules of the budget ledger.

    Fields:
        currency: ISO 4217 code all amounts are denominated in.
        amount_places: Decimal places of money amounts (0 for IDR).
        utilization_places: Decimal places of utilization percentages.
        project_requires_commitment: Actuals on PROJECT budgets must
            reference an approved commitment.
        default_project_name: Report row name for budgets with no
            project name.
        block_closed_fiscal_years: Refuse budget creation for fiscal
            years the master data marks closed.
    """

    config_id: str = "default"
    version: int = 1
    currency: str = "IDR"
    amount_places: int = 0
    utilization_places: int = 2
    project_requires_commitment: bool = True
    default_project_name: str = "Routine Operations"
    block_closed_fiscal_years: bool = True
    checksum: str = ""

    def __post_init__(self):
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValueError(f"currency must be a 3-letter code, got {self.currency!r}")
        if self.amount_places < 0:
            raise ValueError("amount_places cannot be negative")
        if self.utilization_places < 0:
            raise ValueError("utilization_places cannot be negative")
        if not self.default_project_name.strip():
            raise ValueError("default_project_name cannot be empty")
        if self.version < 1:
            raise ValueError("version must be at least 1")
        logger.debug("ledger_config_initialized", extra={
            "config_id": self.config_id,
            "project_requires_commitment": self.project_requires_commitment,
        })

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()
