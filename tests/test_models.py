"""
Tests for Family Ledger models

Test strategy:
1. Unit tests for individual components (models, engine functions)
2. Flow tests for the ledger service against the in-memory store
3. No real clock in tests (use fixed_clock)
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

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


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        transaction = Transaction(
            amount=Decimal("42.50"),
            date=utc(2024, 3, 15),
            description="Groceries",
            type=TransactionType.EXPENSE,
            category="food",
        )
        assert transaction.amount == Decimal("42.50")
        assert transaction.main_category == MainCategory.PERSONAL
        assert transaction.is_split is False
        assert transaction.month == "2024-03"

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from description."""
        transaction = Transaction(
            amount=Decimal("1"),
            date=utc(2024, 3, 15),
            description="  Coffee  ",
            type=TransactionType.EXPENSE,
            category="food",
        )
        assert transaction.description == "Coffee"

    def test_transaction_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in (Decimal("0"), Decimal("-10")):
            with pytest.raises(ValueError):
                Transaction(
                    amount=amount,
                    date=utc(2024, 3, 15),
                    description="Test",
                    type=TransactionType.EXPENSE,
                    category="food",
                )

    def test_naive_date_is_treated_as_utc(self):
        """Test naive datetimes are stored as UTC."""
        transaction = Transaction(
            amount=Decimal("1"),
            date=datetime(2024, 3, 15, 10, 0),
            description="Test",
            type=TransactionType.EXPENSE,
            category="food",
        )
        assert transaction.date.tzinfo == timezone.utc

    def test_month_key_uses_utc_date(self):
        """Test a late-evening local time lands in the UTC month."""
        eastern = timezone(timedelta(hours=-5))
        transaction = Transaction(
            amount=Decimal("1"),
            date=datetime(2024, 1, 31, 22, 0, tzinfo=eastern),
            description="Test",
            type=TransactionType.EXPENSE,
            category="food",
        )
        assert transaction.month == "2024-02"

    def test_split_transaction_must_sum_to_amount(self):
        """Test split amounts must account for the whole transaction."""
        with pytest.raises(ValueError, match="Split amounts sum to"):
            Transaction(
                amount=Decimal("100.00"),
                date=utc(2024, 3, 15),
                description="Shopping",
                type=TransactionType.EXPENSE,
                category="shopping",
                is_split=True,
                splits=[
                    SplitTransaction(amount=Decimal("60.00"), category="food"),
                    SplitTransaction(amount=Decimal("30.00"), category="home"),
                ],
            )

    def test_valid_split_transaction(self):
        """Test a correctly split transaction."""
        transaction = Transaction(
            amount=Decimal("100.00"),
            date=utc(2024, 3, 15),
            description="Shopping",
            type=TransactionType.EXPENSE,
            category="shopping",
            is_split=True,
            splits=[
                SplitTransaction(amount=Decimal("60.00"), category="food"),
                SplitTransaction(amount=Decimal("40.00"), category="home"),
            ],
        )
        assert len(transaction.splits) == 2

    def test_split_flag_requires_splits(self):
        """Test is_split without any splits is rejected."""
        with pytest.raises(ValueError, match="at least one split"):
            Transaction(
                amount=Decimal("100.00"),
                date=utc(2024, 3, 15),
                description="Shopping",
                type=TransactionType.EXPENSE,
                category="shopping",
                is_split=True,
            )

    def test_splits_without_flag_rejected(self):
        """Test splits are only accepted on split transactions."""
        with pytest.raises(ValueError, match="not marked as split"):
            Transaction(
                amount=Decimal("100.00"),
                date=utc(2024, 3, 15),
                description="Shopping",
                type=TransactionType.EXPENSE,
                category="shopping",
                splits=[SplitTransaction(amount=Decimal("100.00"), category="food")],
            )


class TestRecurringRuleModels:
    """Tests for recurring rule validation."""

    def test_recurring_rule_creation(self):
        rule = RecurringRule(
            description="Rent",
            amount=Decimal("1200"),
            type=TransactionType.EXPENSE,
            category="housing",
            frequency=RecurringFrequency.MONTHLY,
            start_date=utc(2024, 1, 1),
        )
        assert rule.amount == Decimal("1200.00")
        assert rule.last_processed is None

    def test_recurring_rule_end_date_validation(self):
        """Test that end_date cannot be before start_date."""
        with pytest.raises(ValueError, match="End date cannot be before start date"):
            RecurringRule(
                description="Rent",
                amount=Decimal("1200"),
                type=TransactionType.EXPENSE,
                category="housing",
                frequency=RecurringFrequency.MONTHLY,
                start_date=utc(2024, 5, 1),
                end_date=utc(2024, 1, 1),
            )

    def test_unknown_frequency_rejected(self):
        """Test frequencies outside the supported set are rejected at creation."""
        with pytest.raises(ValueError):
            RecurringRule(
                description="Rent",
                amount=Decimal("1200"),
                type=TransactionType.EXPENSE,
                category="housing",
                frequency="fortnightly",
                start_date=utc(2024, 1, 1),
            )


class TestBudgetAndGoalModels:
    """Tests for monthly budgets and savings goals."""

    def test_empty_budget(self):
        budget = MonthlyBudget.empty("2024-03")
        assert budget.balance == Decimal("0.00")
        assert budget.category_limits == {}

    def test_budget_month_format(self):
        """Test month keys must be YYYY-MM."""
        with pytest.raises(ValueError):
            MonthlyBudget(month="2024-13")
        with pytest.raises(ValueError):
            MonthlyBudget(month="March 2024")

    def test_negative_category_limit_rejected(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            MonthlyBudget(month="2024-03", category_limits={"food": Decimal("-1")})

    def test_goal_current_cannot_exceed_target(self):
        with pytest.raises(ValueError, match="cannot exceed target"):
            SavingsGoal(
                name="Holiday",
                target_amount=Decimal("1000"),
                current_amount=Decimal("1500"),
                deadline=utc(2025, 1, 1),
                category="savings",
            )

    def test_goal_is_active(self):
        """Test only incomplete goals with a percentage take allocations."""
        goal = SavingsGoal(
            name="Holiday",
            target_amount=Decimal("1000"),
            deadline=utc(2025, 1, 1),
            category="savings",
            auto_allocate_percentage=Decimal("10"),
        )
        assert goal.is_active is True
        assert goal.remaining_amount == Decimal("1000.00")
        assert goal.model_copy(update={"is_completed": True}).is_active is False
        assert goal.model_copy(update={"auto_allocate_percentage": Decimal("0")}).is_active is False

    def test_goal_percentage_bounds(self):
        with pytest.raises(ValueError):
            SavingsGoal(
                name="Holiday",
                target_amount=Decimal("1000"),
                deadline=utc(2025, 1, 1),
                category="savings",
                auto_allocate_percentage=Decimal("101"),
            )

    def test_funded_goal_is_completed(self):
        """Test a goal created at its target is completed straight away."""
        goal = SavingsGoal(
            name="Holiday",
            target_amount=Decimal("1000"),
            current_amount=Decimal("1000"),
            deadline=utc(2025, 1, 1),
            category="savings",
            auto_allocate_percentage=Decimal("10"),
        )
        assert goal.is_completed is True
        assert goal.is_active is False


class TestTags:

    def test_tag_defaults(self):
        tag = TransactionTag(name="  Holiday  ")
        assert tag.name == "Holiday"
        assert tag.color == "#6b7280"
        assert tag.id

    def test_invalid_color_rejected(self):
        with pytest.raises(ValueError):
            TransactionTag(name="Holiday", color="orange")

    def test_snapshot_tag_names(self):
        snapshot = LedgerSnapshot(tags=[
            TransactionTag(id="t1", name="Holiday"),
            TransactionTag(id="t2", name="Work"),
        ])
        assert snapshot.tag_names == {"t1": "Holiday", "t2": "Work"}


class TestCategoryRegistry:
    """Tests for the category registry."""

    def test_lookup_and_children(self):
        registry = CategoryRegistry(definitions=[
            CategoryDefinition(id="food", name="Food", type=TransactionType.EXPENSE),
            CategoryDefinition(id="dining", name="Dining", type=TransactionType.EXPENSE, parent_id="food"),
        ])
        assert "food" in registry
        assert len(registry) == 2
        assert registry.name_of("dining") == "Dining"
        assert registry.name_of("unknown") == "unknown"
        assert [c.id for c in registry.children_of("food")] == ["dining"]
        assert registry.ids_named(["FOOD"]) == {"food"}

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate category id"):
            CategoryRegistry(definitions=[
                CategoryDefinition(id="food", name="Food", type=TransactionType.EXPENSE),
                CategoryDefinition(id="food", name="Food again", type=TransactionType.EXPENSE),
            ])

    def test_unknown_parent_rejected(self):
        with pytest.raises(ValueError, match="unknown parent"):
            CategoryRegistry(definitions=[
                CategoryDefinition(id="dining", name="Dining", type=TransactionType.EXPENSE, parent_id="food"),
            ])

    def test_snapshot_builds_registry(self):
        snapshot = LedgerSnapshot(categories=[
            CategoryDefinition(id="salary", name="Salary", type=TransactionType.INCOME),
        ])
        assert snapshot.registry.get("salary").name == "Salary"
        assert snapshot.budget_for("2024-01").month == "2024-01"


class TestNotificationModels:
    """Tests for notification models."""

    def test_notification_creation(self):
        notification = Notification(
            kind=NotificationKind.BUDGET_INSIGHT,
            type=NotificationType.INFO,
            message="Test",
        )
        assert notification.timestamp.tzinfo is not None

    def test_notification_to_log_dict(self):
        """Test conversion to log dictionary."""
        goal_id = uuid4()
        notification = NotificationBuilder.goal_allocated(
            goal_id=goal_id,
            goal_name="Holiday",
            amount=Decimal("100.00"),
            currency="USD",
        )
        log_dict = notification.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["kind"] == "goal_allocation"
        assert log_dict["entity_id"] == str(goal_id)
        assert notification.message == "Allocated $100.00 to Holiday"

    def test_goal_completed_message(self):
        notification = NotificationBuilder.goal_completed(uuid4(), "Car")
        assert notification.type == NotificationType.SUCCESS
        assert notification.message == "Congratulations! You've reached your savings goal for Car"

    def test_transaction_split_message(self):
        notification = NotificationBuilder.transaction_split(uuid4(), parts=3)
        assert notification.message == "Transaction split into 3 parts"

    def test_from_insight(self):
        insight = Insight(
            type=NotificationType.WARNING,
            message="Over budget",
            category="food",
            suggested_limit=Decimal("550"),
        )
        notification = NotificationBuilder.from_insight(insight)
        assert notification.kind == NotificationKind.BUDGET_INSIGHT
        assert notification.type == NotificationType.WARNING
        assert notification.details["category"] == "food"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
