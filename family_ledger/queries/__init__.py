"""Transaction query package."""

from family_ledger.queries.filters import (
    TransactionFilter,
    calculate_total,
    describe_filter,
    filter_transactions,
    group_by_month,
    suggest_splits,
)

__all__ = [
    "TransactionFilter",
    "calculate_total",
    "describe_filter",
    "filter_transactions",
    "group_by_month",
    "suggest_splits",
]
