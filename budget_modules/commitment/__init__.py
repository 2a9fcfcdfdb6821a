"""Commitment lifecycle: transition table and service."""

from budget_modules.commitment.service import CommitmentLifecycleService
from budget_modules.commitment.workflows import COMMITMENT_WORKFLOW

__all__ = ["CommitmentLifecycleService", "COMMITMENT_WORKFLOW"]
