"""
Family Ledger - Source Package

The reconciliation engine behind a personal/family finance tracker.
It keeps a household ledger consistent as time passes and money arrives.

DESIGN PRINCIPLES:
1. The ledger is one aggregate, passed explicitly into pure functions
2. Money is exact (Decimal at the edges, integer cents inside)
3. Invariant violations fail loudly, they are never coerced
4. Catch-up is idempotent: no duplicate billing
5. Storage is swappable
"""

__version__ = "1.0.0"
__author__ = "Family Ledger Team"
