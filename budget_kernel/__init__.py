"""
Budget Kernel - lifecycle and ledger core

An in-memory budget ledger with:
- Explicit state machines for budgets, revisions, commitments and actuals
- Role-scoped, two-stage approval (unit supervisor, then corporate budget admin)
- Balances recomputed from the entity store on every read
- Typed failure results for every rejected operation
"""

__version__ = "0.1.0"
