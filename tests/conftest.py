"""
Pytest fixtures for the budget ledger test suite.

Provides:
- Structured logging setup and a ``captured_logs`` reader
- A deterministic clock and a fully wired ``BudgetLedger``
- Actors for two units plus the corporate budget admin
- Builders that drive budgets and commitments to their spendable states
"""

import json
import logging
from io import StringIO

import pytest

from budget_kernel.domain.clock import DeterministicClock
from budget_kernel.domain.roles import Actor, ActorRole
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from budget_services.ledger import BudgetLedger
from tests.builders import UNIT_A, UNIT_B, actual_draft, budget_draft, commitment_draft


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture budget_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.budgets.create_budget(...)
            logs = captured_logs()
            assert any(r["message"] == "budget_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def outcomes():
    """Workflow transition records collected through the outcome sink."""
    return []


@pytest.fixture
def ledger(deterministic_clock, outcomes):
    return BudgetLedger(clock=deterministic_clock, outcome_sink=outcomes.append)


@pytest.fixture
def operator():
    return Actor("op-1", ActorRole.OPERATOR, UNIT_A)


@pytest.fixture
def other_operator():
    return Actor("op-2", ActorRole.OPERATOR, UNIT_B)


@pytest.fixture
def supervisor():
    return Actor("sup-1", ActorRole.SUPERVISOR, UNIT_A)


@pytest.fixture
def other_supervisor():
    return Actor("sup-2", ActorRole.SUPERVISOR, UNIT_B)


@pytest.fixture
def admin():
    return Actor("adm-1", ActorRole.ADMIN_BUDGET)


@pytest.fixture
def make_active_budget(ledger, operator, supervisor, admin):
    """Create a budget and approve it through both stages."""

    def _make(amount="1000000", **overrides):
        budget = ledger.budgets.create_budget(
            budget_draft(amount, **overrides), operator, submit=True,
        ).unwrap()
        ledger.budgets.approve_budget_by_unit(budget.id, supervisor).unwrap()
        return ledger.budgets.approve_budget_by_admin(budget.id, admin).unwrap()

    return _make


@pytest.fixture
def make_approved_commitment(ledger, operator, supervisor, admin):
    """Create a commitment and approve it through finance."""

    def _make(budget_id, amount="400000", **overrides):
        commitment = ledger.commitments.create_commitment(
            commitment_draft(budget_id, amount, **overrides), operator, submit=True,
        ).unwrap()
        ledger.commitments.approve_commitment_by_unit(commitment.id, supervisor).unwrap()
        return ledger.commitments.approve_commitment_by_finance(commitment.id, admin).unwrap()

    return _make


@pytest.fixture
def make_posted_actual(ledger, operator, supervisor, admin):
    """Record an actual payment and post it."""

    def _make(budget_id, amount="400000", commitment_id=None, **overrides):
        actual = ledger.actuals.create_actual(
            actual_draft(budget_id, amount, commitment_id, **overrides), operator, submit=True,
        ).unwrap()
        ledger.actuals.approve_actual_by_unit(actual.id, supervisor).unwrap()
        return ledger.actuals.post_actual(actual.id, admin).unwrap()

    return _make
