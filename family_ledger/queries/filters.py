"""
Transaction Queries

Deterministic, read-only lookups over the ledger's transactions:
filtering, grouping, totals, and split suggestions for a new entry.

Every function works on the transactions it is given and never reaches
into storage.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from family_ledger.models.ledger import (
    MONTH_KEY_PATTERN,
    MainCategory,
    SplitTransaction,
    Transaction,
    TransactionType,
)
from family_ledger.utils.dates import ensure_utc
from family_ledger.utils.money import (
    from_minor_units,
    sum_money,
    to_minor_units,
)


class TransactionFilter(BaseModel):
    """
    Criteria for narrowing down the transaction list.

    All given criteria must match (logical AND). Empty lists mean
    "any value".
    """

    type: Optional[TransactionType] = None
    month: Optional[str] = Field(default=None, pattern=MONTH_KEY_PATTERN)
    search: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    categories: list[str] = Field(default_factory=list)
    main_categories: list[MainCategory] = Field(default_factory=list)
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None

    @field_validator('date_from', 'date_to')
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else v

    @model_validator(mode='after')
    def validate_ranges(self) -> 'TransactionFilter':
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("Date range end cannot be before start")
        if (
            self.min_amount is not None
            and self.max_amount is not None
            and self.max_amount < self.min_amount
        ):
            raise ValueError("Maximum amount cannot be below minimum amount")
        return self


def matches(
    transaction: Transaction,
    criteria: TransactionFilter,
    tag_names: Optional[Mapping[str, str]] = None,
) -> bool:
    """Check one transaction against the filter."""
    if criteria.type and transaction.type != criteria.type:
        return False

    if criteria.month and transaction.month != criteria.month:
        return False

    if criteria.date_from and transaction.date < criteria.date_from:
        return False
    if criteria.date_to and transaction.date > criteria.date_to:
        return False

    if criteria.tags and not any(tag in criteria.tags for tag in transaction.tags):
        return False

    if criteria.categories and transaction.category not in criteria.categories:
        return False

    if criteria.main_categories and transaction.main_category not in criteria.main_categories:
        return False

    if criteria.min_amount is not None and transaction.amount < criteria.min_amount:
        return False
    if criteria.max_amount is not None and transaction.amount > criteria.max_amount:
        return False

    if criteria.search:
        needle = criteria.search.lower()
        names = tag_names or {}
        if not (
            needle in transaction.description.lower()
            or needle in transaction.category.lower()
            or any(needle in names.get(tag, "").lower() for tag in transaction.tags)
        ):
            return False

    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    criteria: TransactionFilter,
    tag_names: Optional[Mapping[str, str]] = None,
) -> list[Transaction]:
    """
    Transactions matching the filter, in their original order.

    Args:
        transactions: Transactions to search
        criteria: The filter
        tag_names: Tag id -> display name, so a search can match tag names
    """
    return [t for t in transactions if matches(t, criteria, tag_names)]


def group_by_month(transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    """Transactions bucketed by YYYY-MM key."""
    groups: dict[str, list[Transaction]] = defaultdict(list)
    for transaction in transactions:
        groups[transaction.month].append(transaction)
    return dict(groups)


def calculate_total(
    transactions: Iterable[Transaction],
    type: Optional[TransactionType] = None,
) -> Decimal:
    """Sum of amounts, optionally restricted to one transaction type."""
    return sum_money(
        t.amount for t in transactions if type is None or t.type == type
    )


def suggest_splits(
    description: str,
    amount: Decimal,
    type: TransactionType,
    transactions: Iterable[Transaction],
) -> Optional[list[SplitTransaction]]:
    """
    Propose splits for a new transaction from a similar past one.

    Looks for split transactions of the same type whose description
    contains `description` (case-insensitive) and reuses the proportions
    of the most recent one. The last split absorbs the rounding remainder
    so the suggestion sums to `amount` exactly.

    Returns None when no similar split transaction exists.
    """
    needle = description.lower()
    similar = sorted(
        (
            t for t in transactions
            if t.is_split and t.splits and t.type == type
            and needle in t.description.lower()
        ),
        key=lambda t: t.date,
        reverse=True,
    )
    if not similar:
        return None

    pattern = similar[0].splits
    pattern_total = sum(to_minor_units(split.amount) for split in pattern)
    if pattern_total == 0:
        return None

    target = to_minor_units(amount)
    suggested = []
    allocated = 0
    for index, split in enumerate(pattern):
        if index == len(pattern) - 1:
            share = target - allocated
        else:
            share = to_minor_units(split.amount) * target // pattern_total
        allocated += share
        suggested.append(SplitTransaction(
            id=uuid4(),
            amount=from_minor_units(share),
            category=split.category,
            main_category=split.main_category,
            description=split.description,
        ))

    return suggested


def describe_filter(criteria: TransactionFilter) -> str:
    """Human-readable description of a filter, for headings and logs."""
    parts = []
    if criteria.type:
        parts.append(f"{criteria.type.value} transactions")
    else:
        parts.append("All transactions")
    if criteria.month:
        parts.append(f"in {datetime.strptime(criteria.month, '%Y-%m').strftime('%B %Y')}")
    if criteria.date_from or criteria.date_to:
        parts.append(_date_range_str(criteria.date_from, criteria.date_to))
    if criteria.categories:
        parts.append(f"category: {', '.join(criteria.categories)}")
    if criteria.main_categories:
        parts.append(f"under: {', '.join(m.value for m in criteria.main_categories)}")
    if criteria.tags:
        parts.append(f"tagged: {', '.join(criteria.tags)}")
    if criteria.search:
        parts.append(f"matching '{criteria.search}'")
    return " | ".join(parts)


def _date_range_str(
    date_from: Optional[datetime],
    date_to: Optional[datetime],
) -> str:
    """Format date range for description."""
    if date_from and date_to:
        if date_from.date() == date_to.date():
            return f"on {date_from.strftime('%d %b %Y')}"
        elif date_from.month == date_to.month and date_from.year == date_to.year:
            return f"in {date_from.strftime('%B %Y')}"
        elif date_from.year == date_to.year:
            return f"from {date_from.strftime('%b')} to {date_to.strftime('%b %Y')}"
        else:
            return f"from {date_from.strftime('%b %Y')} to {date_to.strftime('%b %Y')}"
    elif date_from:
        return f"from {date_from.strftime('%d %b %Y')}"
    elif date_to:
        return f"until {date_to.strftime('%d %b %Y')}"
    return ""
