"""
Recommendation Engine

Read-only budget analytics. Looks at one period's transactions, that
period's budget, the savings goals and the category registry, and returns
insights in the order they were generated. Nothing is mutated.

Rules, in generation order:
1. Overall spend ratio above the warning threshold
2. Categories over their configured limit (with a suggested new limit)
3. Subcategories carrying most of a parent category's spend
4. Savings goals needing more per month than the savings share of income
5. Discretionary spend above its share of income
6. One batched note for categories chronically over their limit
"""

from collections import OrderedDict
from datetime import datetime
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

import structlog

from family_ledger.config import EngineSettings, get_settings
from family_ledger.models.events import Insight, NotificationType
from family_ledger.models.ledger import (
    CategoryDefinition,
    CategoryRegistry,
    MonthlyBudget,
    SavingsGoal,
    Transaction,
    TransactionType,
)
from family_ledger.utils.dates import ensure_utc, months_between
from family_ledger.utils.money import format_currency, quantize_money, sum_money

logger = structlog.get_logger(__name__)

Categories = Union[CategoryRegistry, Iterable[CategoryDefinition]]


def _as_registry(categories: Categories) -> CategoryRegistry:
    if isinstance(categories, CategoryRegistry):
        return categories
    return CategoryRegistry(definitions=list(categories))


def _percent(part: Decimal, whole: Decimal) -> int:
    """Whole-number percentage, rounded half-up."""
    return int((part / whole * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _threshold(value: float) -> Decimal:
    return Decimal(str(value))


def spending_by_category(transactions: Iterable[Transaction]) -> "OrderedDict[str, Decimal]":
    """Expense totals per category id, in order of first appearance."""
    spending: "OrderedDict[str, Decimal]" = OrderedDict()
    for transaction in transactions:
        if transaction.type != TransactionType.EXPENSE:
            continue
        spending[transaction.category] = (
            spending.get(transaction.category, Decimal("0.00")) + transaction.amount
        )
    return spending


def monthly_goal_requirement(goals: Iterable[SavingsGoal], now: datetime) -> Decimal:
    """
    What the unfinished goals need per month to hit their deadlines.

    Goals whose deadline is this month or already past are left out.
    """
    total = Decimal("0.00")
    for goal in goals:
        if goal.is_completed:
            continue
        months_left = months_between(now, goal.deadline)
        if months_left <= 0:
            continue
        total += goal.remaining_amount / months_left
    return quantize_money(total)


def recommend(
    transactions: Iterable[Transaction],
    budget: MonthlyBudget,
    goals: Iterable[SavingsGoal],
    categories: Categories,
    now: datetime,
    currency: str = "USD",
    settings: Optional[EngineSettings] = None,
) -> list[Insight]:
    """
    Produce budget insights for one period.

    Args:
        transactions: Transactions of the period being analysed
        budget: That period's budget (category limits are read from it)
        goals: All savings goals
        categories: Category registry, or the definitions to build one from
        now: Reference instant for goal deadlines
        currency: Currency used in messages
        settings: Thresholds; defaults to the configured EngineSettings

    Returns:
        Insights in generation order. The caller may re-prioritize by type.
    """
    settings = settings or get_settings().engine
    registry = _as_registry(categories)
    transactions = list(transactions)
    goals = list(goals)
    now = ensure_utc(now)

    insights: list[Insight] = []

    total_income = sum_money(
        t.amount for t in transactions if t.type == TransactionType.INCOME
    )
    total_expenses = sum_money(
        t.amount for t in transactions if t.type == TransactionType.EXPENSE
    )
    category_spending = spending_by_category(transactions)
    limits = budget.category_limits

    # Overall budget health
    if total_income > 0:
        ratio = total_expenses / total_income
        if ratio > _threshold(settings.spending_ratio_warning):
            insights.append(Insight(
                type=NotificationType.WARNING,
                message=(
                    f"Your expenses are {_percent(total_expenses, total_income)}% "
                    "of your income. Consider reducing non-essential spending."
                ),
            ))
    elif total_expenses > 0:
        insights.append(Insight(
            type=NotificationType.WARNING,
            message=(
                f"You spent {format_currency(total_expenses, currency)} "
                "with no income recorded. Consider reducing non-essential spending."
            ),
            current_spending=total_expenses,
        ))

    # Category limits and subcategory concentration
    for category_id, spent in category_spending.items():
        category = registry.get(category_id)
        if category is None:
            continue

        limit = limits.get(category_id)
        if limit and spent > limit:
            suggested = (spent * _threshold(settings.category_limit_headroom)).to_integral_value(
                rounding=ROUND_CEILING
            )
            insights.append(Insight(
                type=NotificationType.WARNING,
                message=(
                    f"You've exceeded your {category.name} budget by "
                    f"{format_currency(spent - limit, currency)}"
                ),
                category=category_id,
                current_spending=spent,
                suggested_limit=suggested,
            ))

        subcategory_ids = {sub.id for sub in registry.children_of(category_id)}
        if subcategory_ids:
            subcategory_spending = sum_money(
                t.amount
                for t in transactions
                if t.type == TransactionType.EXPENSE and t.category in subcategory_ids
            )
            if subcategory_spending > spent * _threshold(settings.subcategory_concentration):
                insights.append(Insight(
                    type=NotificationType.INFO,
                    message=(
                        f"Consider setting individual budgets for {category.name} "
                        f"subcategories as they make up "
                        f"{_percent(subcategory_spending, spent)}% of the category spending."
                    ),
                    category=category_id,
                ))

    # Savings goal feasibility
    required_monthly = monthly_goal_requirement(goals, now)
    if required_monthly > total_income * _threshold(settings.savings_share_of_income):
        insights.append(Insight(
            type=NotificationType.INFO,
            message=(
                f"Your monthly savings goals ({format_currency(required_monthly, currency)}) "
                "might be too ambitious. Consider extending deadlines or adjusting targets."
            ),
        ))

    # Discretionary spending
    discretionary_ids = registry.ids_named(settings.discretionary_names_list)
    discretionary_ids |= {
        d.id for d in registry if d.parent_id is not None and d.parent_id in discretionary_ids
    }
    discretionary_spending = sum_money(
        t.amount
        for t in transactions
        if t.type == TransactionType.EXPENSE and t.category in discretionary_ids
    )
    if discretionary_spending > total_income * _threshold(settings.discretionary_share_of_income):
        share = (
            f" ({_percent(discretionary_spending, total_income)}%)"
            if total_income > 0 else ""
        )
        insights.append(Insight(
            type=NotificationType.INFO,
            message=(
                f"You're spending {format_currency(discretionary_spending, currency)}{share} "
                "on discretionary items. Consider redirecting some to savings."
            ),
            current_spending=discretionary_spending,
        ))

    # Chronic overspending, batched into one note
    over_budget = [
        registry.name_of(category_id)
        for category_id, spent in category_spending.items()
        if limits.get(category_id)
        and spent > limits[category_id] * _threshold(settings.chronic_overage_ratio)
    ]
    if over_budget:
        insights.append(Insight(
            type=NotificationType.INFO,
            message=f"Consider adjusting budgets for: {', '.join(over_budget)}",
        ))

    logger.debug(
        "recommendations_generated",
        month=budget.month,
        count=len(insights),
    )

    return insights
