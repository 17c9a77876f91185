"""
Data Models Package

This package contains all Pydantic models used by the ledger engine.
All data flowing through the engine must conform to these schemas.
"""

from family_ledger.models.ledger import (
    CategoryDefinition,
    CategoryRegistry,
    LedgerSnapshot,
    MainCategory,
    MonthlyBudget,
    RecurringFrequency,
    RecurringRule,
    SavingsGoal,
    SplitTransaction,
    Transaction,
    TransactionTag,
    TransactionType,
)
from family_ledger.models.events import (
    Insight,
    Notification,
    NotificationBuilder,
    NotificationKind,
    NotificationType,
)

__all__ = [
    # Ledger models
    "CategoryDefinition",
    "CategoryRegistry",
    "LedgerSnapshot",
    "MainCategory",
    "MonthlyBudget",
    "RecurringFrequency",
    "RecurringRule",
    "SavingsGoal",
    "SplitTransaction",
    "Transaction",
    "TransactionTag",
    "TransactionType",
    # Notification models
    "Insight",
    "Notification",
    "NotificationBuilder",
    "NotificationKind",
    "NotificationType",
]
