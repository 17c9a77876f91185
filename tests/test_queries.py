"""Tests for transaction queries and split suggestions."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from family_ledger.models.ledger import (
    MainCategory,
    SplitTransaction,
    Transaction,
    TransactionType,
)
from family_ledger.queries import (
    TransactionFilter,
    calculate_total,
    describe_filter,
    filter_transactions,
    group_by_month,
    suggest_splits,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def tx(amount, type, category, description, when, **extra) -> Transaction:
    return Transaction(
        amount=Decimal(amount),
        date=when,
        description=description,
        type=type,
        category=category,
        **extra,
    )


@pytest.fixture
def ledger() -> list[Transaction]:
    return [
        tx("3000", TransactionType.INCOME, "salary", "March salary", utc(2024, 3, 1)),
        tx("1200", TransactionType.EXPENSE, "housing", "Rent", utc(2024, 3, 2),
           main_category=MainCategory.FAMILY),
        tx("85.40", TransactionType.EXPENSE, "food", "Weekly groceries", utc(2024, 3, 9),
           tags=["tag-1"]),
        tx("42", TransactionType.EXPENSE, "food", "Pizza night", utc(2024, 4, 3),
           tags=["tag-2"]),
        tx("500", TransactionType.INVESTMENT, "stocks", "Index fund", utc(2024, 4, 5)),
    ]


class TestFilterTransactions:
    """Tests for combined transaction filters."""

    def test_empty_filter_matches_everything(self, ledger):
        assert filter_transactions(ledger, TransactionFilter()) == ledger

    def test_filter_by_type_and_month(self, ledger):
        result = filter_transactions(
            ledger,
            TransactionFilter(type=TransactionType.EXPENSE, month="2024-03"),
        )

        assert [t.description for t in result] == ["Rent", "Weekly groceries"]

    def test_search_is_case_insensitive(self, ledger):
        result = filter_transactions(ledger, TransactionFilter(search="PIZZA"))

        assert [t.description for t in result] == ["Pizza night"]

    def test_search_matches_category_and_tag_names(self, ledger):
        by_category = filter_transactions(ledger, TransactionFilter(search="stock"))
        by_tag = filter_transactions(
            ledger,
            TransactionFilter(search="weekend"),
            tag_names={"tag-2": "Weekend"},
        )

        assert [t.description for t in by_category] == ["Index fund"]
        assert [t.description for t in by_tag] == ["Pizza night"]

    def test_filter_by_tags_categories_and_main_category(self, ledger):
        assert len(filter_transactions(ledger, TransactionFilter(tags=["tag-1", "tag-2"]))) == 2
        assert len(filter_transactions(ledger, TransactionFilter(categories=["food"]))) == 2
        family = filter_transactions(
            ledger,
            TransactionFilter(main_categories=[MainCategory.FAMILY]),
        )
        assert [t.description for t in family] == ["Rent"]

    def test_filter_by_date_and_amount_range(self, ledger):
        result = filter_transactions(
            ledger,
            TransactionFilter(
                date_from=utc(2024, 3, 2),
                date_to=utc(2024, 4, 4),
                min_amount=Decimal("50"),
                max_amount=Decimal("1500"),
            ),
        )

        assert [t.description for t in result] == ["Rent", "Weekly groceries"]

    def test_invalid_ranges_rejected(self):
        with pytest.raises(ValueError, match="Date range end cannot be before start"):
            TransactionFilter(date_from=utc(2024, 5, 1), date_to=utc(2024, 4, 1))
        with pytest.raises(ValueError, match="Maximum amount cannot be below minimum"):
            TransactionFilter(min_amount=Decimal("10"), max_amount=Decimal("5"))


class TestAggregation:

    def test_group_by_month(self, ledger):
        groups = group_by_month(ledger)

        assert sorted(groups) == ["2024-03", "2024-04"]
        assert len(groups["2024-03"]) == 3

    def test_calculate_total(self, ledger):
        assert calculate_total(ledger, TransactionType.EXPENSE) == Decimal("1327.40")
        assert calculate_total(ledger) == Decimal("4827.40")
        assert calculate_total([]) == Decimal("0.00")


class TestDescribeFilter:

    def test_describe_filter(self):
        text = describe_filter(TransactionFilter(
            type=TransactionType.EXPENSE,
            month="2024-03",
            search="rent",
        ))

        assert text == "expense transactions | in March 2024 | matching 'rent'"

    def test_describe_date_range(self):
        text = describe_filter(TransactionFilter(
            date_from=utc(2024, 1, 1),
            date_to=utc(2024, 3, 31),
        ))

        assert text == "All transactions | from Jan to Mar 2024"


class TestSuggestSplits:
    """Tests for split suggestions from earlier transactions."""

    @pytest.fixture
    def history(self) -> list[Transaction]:
        return [
            tx("100", TransactionType.EXPENSE, "shopping", "Costco run", utc(2024, 1, 5),
               is_split=True,
               splits=[
                   SplitTransaction(amount=Decimal("50"), category="food"),
                   SplitTransaction(amount=Decimal("50"), category="home"),
               ]),
            tx("200", TransactionType.EXPENSE, "shopping", "Costco run", utc(2024, 2, 5),
               is_split=True,
               splits=[
                   SplitTransaction(amount=Decimal("100"), category="food", description="Groceries"),
                   SplitTransaction(amount=Decimal("60"), category="home"),
                   SplitTransaction(amount=Decimal("40"), category="kids"),
               ]),
        ]

    def test_uses_most_recent_match(self, history):
        splits = suggest_splits("costco", Decimal("50"), TransactionType.EXPENSE, history)

        assert [s.category for s in splits] == ["food", "home", "kids"]
        assert [s.amount for s in splits] == [Decimal("25.00"), Decimal("15.00"), Decimal("10.00")]
        assert splits[0].description == "Groceries"

    def test_remainder_goes_to_last_split(self, history):
        splits = suggest_splits("Costco", Decimal("33.33"), TransactionType.EXPENSE, history)

        assert sum(s.amount for s in splits) == Decimal("33.33")
        assert [s.amount for s in splits[:2]] == [Decimal("16.66"), Decimal("9.99")]

    def test_new_split_ids(self, history):
        splits = suggest_splits("Costco", Decimal("10"), TransactionType.EXPENSE, history)

        assert all(s.id not in {p.id for p in history[1].splits} for s in splits)

    def test_no_match(self, history):
        assert suggest_splits("Target", Decimal("10"), TransactionType.EXPENSE, history) is None
        assert suggest_splits("Costco", Decimal("10"), TransactionType.INCOME, history) is None
