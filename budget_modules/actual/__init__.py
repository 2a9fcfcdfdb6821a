"""Actual lifecycle: transition table and service."""

from budget_modules.actual.service import ActualLifecycleService
from budget_modules.actual.workflows import ACTUAL_WORKFLOW

__all__ = ["ActualLifecycleService", "ACTUAL_WORKFLOW"]
