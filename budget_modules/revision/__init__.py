"""Revision lifecycle: transition table and service."""

from budget_modules.revision.service import RevisionLifecycleService
from budget_modules.revision.workflows import REVISION_WORKFLOW

__all__ = ["RevisionLifecycleService", "REVISION_WORKFLOW"]
