"""
Ledger engine.

Four pure functions over snapshot slices. Each returns new values and
never touches storage:

- materialize: recurring rules -> concrete transactions
- reconcile: transactions -> per-month carried-forward balances
- allocate_income: income -> savings goals + split transaction
- recommend: read-only budget insights
"""

from family_ledger.engine.allocator import AllocationResult, allocate_income
from family_ledger.engine.errors import (
    AllocationCapError,
    CheckpointRegressionError,
    LedgerInvariantError,
    SplitConservationError,
)
from family_ledger.engine.recommendations import recommend
from family_ledger.engine.reconciler import MonthSummary, reconcile, summarize_months
from family_ledger.engine.recurring import MaterializationResult, materialize

__all__ = [
    "AllocationCapError",
    "AllocationResult",
    "CheckpointRegressionError",
    "LedgerInvariantError",
    "MaterializationResult",
    "MonthSummary",
    "SplitConservationError",
    "allocate_income",
    "materialize",
    "recommend",
    "reconcile",
    "summarize_months",
]
