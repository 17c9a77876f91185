"""
Core Ledger Models for Family Ledger

These models define the strict schemas for the ledger aggregate.
They are designed to:
1. Reject configuration errors at the boundary (bad frequency, negative
   amount, allocation percentage outside 0-100)
2. Keep money exact (Decimal quantized to the cent)
3. Normalize every datetime to timezone-aware UTC
4. Round-trip through JSON for the ledger store

DESIGN DECISION: The engine never mutates these objects.
It returns copies made with model_copy(update=...), and the caller
replaces the whole snapshot.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterator, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)

from family_ledger.utils.dates import ensure_utc, month_key
from family_ledger.utils.money import quantize_money, sum_money


MONTH_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction in the household's cash flow."""
    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"


class MainCategory(str, Enum):
    """Top-level bucket a transaction is reported under."""
    PERSONAL = "personal"
    BUSINESS = "business"
    FAMILY = "family"


class RecurringFrequency(str, Enum):
    """
    Supported recurrence periods.

    Anything else is rejected when the rule is created, never at
    materialization time.
    """
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class SplitTransaction(BaseModel):
    """
    One part of a split transaction.

    Owned by its parent Transaction; never stored on its own.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Part of the parent amount"
    )
    category: str = Field(..., min_length=1)
    main_category: MainCategory = MainCategory.PERSONAL
    description: Optional[str] = Field(default=None, max_length=200)

    @field_validator('amount')
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        return quantize_money(v)


class Transaction(BaseModel):
    """
    A single concrete ledger entry.

    Immutable once created, except through an explicit update which
    replaces the whole record.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Positive amount; direction comes from type"
    )
    date: datetime = Field(
        ...,
        description="When the transaction happened (UTC)"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        description="Category id from the category registry"
    )
    main_category: MainCategory = MainCategory.PERSONAL

    # Set when the transaction was materialized from a recurring rule
    recurring_rule_id: Optional[UUID] = None

    is_split: bool = False
    splits: list[SplitTransaction] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator('amount')
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        return quantize_money(v)

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode='after')
    def validate_splits(self) -> 'Transaction':
        """Split transactions must account for every cent of the amount."""
        if self.is_split:
            if not self.splits:
                raise ValueError("Split transaction must have at least one split")
            total = sum_money(split.amount for split in self.splits)
            if total != self.amount:
                raise ValueError(
                    f"Split amounts sum to {total}, expected {self.amount}"
                )
        elif self.splits:
            raise ValueError("Splits given but transaction is not marked as split")
        return self

    @property
    def month(self) -> str:
        """YYYY-MM key of the month this transaction belongs to."""
        return month_key(self.date)


# =============================================================================
# RECURRING RULES
# =============================================================================

class RecurringRule(BaseModel):
    """
    A template that produces one transaction per elapsed period.

    last_processed is the checkpoint: the date of the most recently
    materialized occurrence. It only ever moves forward.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    type: TransactionType
    category: str = Field(..., min_length=1)
    main_category: MainCategory = MainCategory.PERSONAL
    frequency: RecurringFrequency
    start_date: datetime
    end_date: Optional[datetime] = None
    last_processed: Optional[datetime] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator('amount')
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        return quantize_money(v)

    @field_validator('start_date', 'end_date', 'last_processed')
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else v

    @model_validator(mode='after')
    def validate_dates(self) -> 'RecurringRule':
        """Validate date relationships."""
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        if self.last_processed and self.last_processed < self.start_date:
            raise ValueError("Last processed date cannot be before start date")
        return self


# =============================================================================
# BUDGETS AND GOALS
# =============================================================================

class MonthlyBudget(BaseModel):
    """
    Goals, limits and the carried-forward balance for one calendar month.

    CRITICAL: balance is derived. Only the reconciler writes it.
    """

    month: str = Field(
        ...,
        pattern=MONTH_KEY_PATTERN,
        description="YYYY-MM"
    )
    income_goal: Decimal = Field(default=Decimal("0.00"), ge=0)
    expense_limit: Decimal = Field(default=Decimal("0.00"), ge=0)
    investment_goal: Decimal = Field(default=Decimal("0.00"), ge=0)
    category_limits: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Spending limit per category id"
    )
    balance: Decimal = Field(
        default=Decimal("0.00"),
        description="Net cumulative position up to and including this month"
    )

    @field_validator('income_goal', 'expense_limit', 'investment_goal', 'balance')
    @classmethod
    def quantize_amounts(cls, v: Decimal) -> Decimal:
        return quantize_money(v)

    @field_validator('category_limits')
    @classmethod
    def validate_category_limits(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        for category, limit in v.items():
            if limit < 0:
                raise ValueError(f"Category limit for {category} cannot be negative")
        return {category: quantize_money(limit) for category, limit in v.items()}

    @classmethod
    def empty(cls, month: str) -> 'MonthlyBudget':
        """A budget with zeroed goals and limits."""
        return cls(month=month)


class SavingsGoal(BaseModel):
    """
    Something the household is saving towards.

    current_amount is increased by the savings allocator and reset only
    by explicit user edits. Once is_completed is set the allocator
    leaves the goal alone.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    deadline: datetime
    category: str = Field(..., min_length=1)
    auto_allocate_percentage: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        description="Share of each new income transaction diverted to this goal"
    )
    is_completed: bool = False

    @field_validator('target_amount', 'current_amount')
    @classmethod
    def quantize_amounts(cls, v: Decimal) -> Decimal:
        return quantize_money(v)

    @field_validator('deadline')
    @classmethod
    def normalize_deadline(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode='after')
    def validate_progress(self) -> 'SavingsGoal':
        if self.current_amount > self.target_amount:
            raise ValueError("Current amount cannot exceed target amount")
        if self.current_amount >= self.target_amount:
            self.is_completed = True
        return self

    @property
    def remaining_amount(self) -> Decimal:
        return self.target_amount - self.current_amount

    @property
    def is_active(self) -> bool:
        """Eligible for auto-allocation."""
        return not self.is_completed and self.auto_allocate_percentage > 0


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryDefinition(BaseModel):
    """A user-defined category; subcategories point at their parent."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    parent_id: Optional[str] = None
    description: Optional[str] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    is_archived: bool = False


class CategoryRegistry(BaseModel):
    """
    Read-only lookup from category id to definition.

    Validated once when built: ids are unique and every parent exists.
    """

    definitions: list[CategoryDefinition] = Field(default_factory=list)

    _by_id: dict[str, CategoryDefinition] = PrivateAttr(default_factory=dict)

    @model_validator(mode='after')
    def validate_registry(self) -> 'CategoryRegistry':
        seen: set[str] = set()
        for definition in self.definitions:
            if definition.id in seen:
                raise ValueError(f"Duplicate category id: {definition.id}")
            seen.add(definition.id)
        for definition in self.definitions:
            if definition.parent_id is not None and definition.parent_id not in seen:
                raise ValueError(
                    f"Category {definition.id} has unknown parent {definition.parent_id}"
                )
        return self

    def model_post_init(self, __context) -> None:
        self._by_id = {d.id: d for d in self.definitions}

    def __iter__(self) -> Iterator[CategoryDefinition]:
        return iter(self.definitions)

    def __len__(self) -> int:
        return len(self.definitions)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._by_id

    def get(self, category_id: str) -> Optional[CategoryDefinition]:
        return self._by_id.get(category_id)

    def name_of(self, category_id: str) -> str:
        """Display name, falling back to the raw id."""
        definition = self._by_id.get(category_id)
        return definition.name if definition else category_id

    def children_of(self, category_id: str) -> list[CategoryDefinition]:
        return [d for d in self.definitions if d.parent_id == category_id]

    def ids_named(self, names: list[str]) -> set[str]:
        """Ids of categories whose name matches one of `names` (case-insensitive)."""
        wanted = {name.lower() for name in names}
        return {d.id for d in self.definitions if d.name.lower() in wanted}


# =============================================================================
# TAGS
# =============================================================================

class TransactionTag(BaseModel):
    """A user-defined label; transactions and rules refer to it by id."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()), min_length=1)
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(default="#6b7280", pattern=r"^#[0-9a-fA-F]{6}$")


# =============================================================================
# THE AGGREGATE
# =============================================================================

class LedgerSnapshot(BaseModel):
    """
    The whole ledger as one value.

    The store hands out a snapshot and accepts a full replacement.
    There is no partial-field update.
    """

    transactions: list[Transaction] = Field(default_factory=list)
    recurring_rules: list[RecurringRule] = Field(default_factory=list)
    budgets: list[MonthlyBudget] = Field(default_factory=list)
    savings_goals: list[SavingsGoal] = Field(default_factory=list)
    categories: list[CategoryDefinition] = Field(default_factory=list)
    tags: list[TransactionTag] = Field(default_factory=list)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    @property
    def registry(self) -> CategoryRegistry:
        return CategoryRegistry(definitions=self.categories)

    @property
    def tag_names(self) -> dict[str, str]:
        """Tag id -> display name, for searching by tag."""
        return {tag.id: tag.name for tag in self.tags}

    def budget_for(self, month: str) -> MonthlyBudget:
        """Stored budget for the month, or a zeroed one."""
        for budget in self.budgets:
            if budget.month == month:
                return budget
        return MonthlyBudget.empty(month)

    def transactions_in(self, month: str) -> list[Transaction]:
        return [t for t in self.transactions if t.month == month]
