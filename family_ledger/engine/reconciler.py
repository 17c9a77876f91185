"""
Balance Reconciler

Recomputes month totals and the carried-forward running balance over the
whole transaction history.

The balance of a month is the net cumulative position since the first
transaction ever recorded, not a figure that resets each month. Months
with no activity between two active months are still produced; their
balance equals the previous month's.

Totals key off the parent transaction's type and amount. Splits only
matter for category-level reporting and never change these sums.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, NamedTuple

import structlog

from family_ledger.models.ledger import MonthlyBudget, Transaction, TransactionType
from family_ledger.utils.dates import iter_month_keys
from family_ledger.utils.money import from_minor_units, to_minor_units

logger = structlog.get_logger(__name__)


class MonthSummary(NamedTuple):
    month: str
    income: Decimal
    expenses: Decimal
    investments: Decimal
    net: Decimal
    balance: Decimal


def months_to_reconcile(
    transactions: list[Transaction],
    existing_budgets: list[MonthlyBudget],
) -> list[str]:
    """
    Every month from the earliest to the latest transaction, plus every
    month that already has a budget record. Ascending.
    """
    keys: set[str] = set()
    if transactions:
        months = [t.month for t in transactions]
        keys.update(iter_month_keys(min(months), max(months)))
    keys.update(budget.month for budget in existing_budgets)
    # YYYY-MM sorts chronologically as a string
    return sorted(keys)


def summarize_months(
    transactions: Iterable[Transaction],
    existing_budgets: Iterable[MonthlyBudget] = (),
) -> list[MonthSummary]:
    """Per-month totals and running balance, oldest month first."""
    transactions = list(transactions)
    existing_budgets = list(existing_budgets)

    totals: dict[str, dict[TransactionType, int]] = defaultdict(lambda: defaultdict(int))
    for transaction in transactions:
        totals[transaction.month][transaction.type] += to_minor_units(transaction.amount)

    summaries = []
    running_balance = 0
    for month in months_to_reconcile(transactions, existing_budgets):
        month_totals = totals.get(month, {})
        income = month_totals.get(TransactionType.INCOME, 0)
        expenses = month_totals.get(TransactionType.EXPENSE, 0)
        investments = month_totals.get(TransactionType.INVESTMENT, 0)

        net = income - expenses - investments
        running_balance += net

        summaries.append(MonthSummary(
            month=month,
            income=from_minor_units(income),
            expenses=from_minor_units(expenses),
            investments=from_minor_units(investments),
            net=from_minor_units(net),
            balance=from_minor_units(running_balance),
        ))

    return summaries


def reconcile(
    transactions: Iterable[Transaction],
    existing_budgets: Iterable[MonthlyBudget],
) -> list[MonthlyBudget]:
    """
    Recompute the balance of every month touched by data or budgets.

    Existing goals and limits are kept; months without a budget record get
    one with zeroed goals. Returns the budgets in ascending month order.
    No transactions and no budgets yields an empty list.
    """
    existing_budgets = list(existing_budgets)
    by_month = {budget.month: budget for budget in existing_budgets}

    updated = []
    for summary in summarize_months(transactions, existing_budgets):
        budget = by_month.get(summary.month)
        if budget is None:
            updated.append(MonthlyBudget(month=summary.month, balance=summary.balance))
        else:
            updated.append(budget.model_copy(update={"balance": summary.balance}))

    if updated:
        logger.debug(
            "balances_reconciled",
            months=len(updated),
            first_month=updated[0].month,
            last_month=updated[-1].month,
            closing_balance=str(updated[-1].balance),
        )

    return updated
