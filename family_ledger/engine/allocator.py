"""
Savings Allocator

Diverts a share of each newly added income transaction into the
household's savings goals and records the diversion as splits of that
transaction.

ALLOCATION POLICY: first eligible goal in list order.
Goals are visited in the order the caller stores them, without
re-sorting. When the percentages add up to more than 100% the goals
later in the list are the ones that miss out: a goal is skipped entirely
when what is left of the transaction cannot cover its allocation.

All arithmetic is done in integer cents, so the splits always sum to the
transaction amount exactly.

The caller must persist the adjusted transaction and the updated goals
together. Committing one without the other leaves money unaccounted for.
"""

from typing import Iterable, NamedTuple

import structlog

from family_ledger.engine.errors import AllocationCapError, SplitConservationError
from family_ledger.models.events import Notification, NotificationBuilder
from family_ledger.models.ledger import (
    MainCategory,
    SavingsGoal,
    SplitTransaction,
    Transaction,
    TransactionType,
)
from family_ledger.utils.money import (
    from_minor_units,
    percentage_of,
    to_minor_units,
)

logger = structlog.get_logger(__name__)

REMAINING_SPLIT_DESCRIPTION = "Remaining amount"


class AllocationResult(NamedTuple):
    adjusted_transaction: Transaction
    updated_goals: list[SavingsGoal]
    events: list[Notification]


def allocate_income(
    transaction: Transaction,
    goals: Iterable[SavingsGoal],
    currency: str = "USD",
) -> AllocationResult:
    """
    Allocate an income transaction to the active savings goals.

    A goal is active when it is not completed and has a positive
    auto_allocate_percentage. For each active goal:

        desired    = amount * percentage / 100   (rounded half-up to the cent)
        allocation = min(desired, target - current)

    The allocation is applied only when it is positive and the unallocated
    remainder can still cover it.

    If anything was allocated, the transaction comes back split: one split
    per allocation plus a final split for the remainder under the original
    category.

    Non-income transactions, and income that the user already split by
    hand, are returned unchanged with no events.
    """
    goals = list(goals)

    if transaction.type != TransactionType.INCOME:
        return AllocationResult(transaction, goals, [])

    if transaction.is_split:
        logger.debug(
            "allocation_skipped_presplit",
            transaction_id=str(transaction.id),
        )
        return AllocationResult(transaction, goals, [])

    amount = to_minor_units(transaction.amount)
    remaining = amount
    splits: list[SplitTransaction] = []
    events: list[Notification] = []
    updated_goals: list[SavingsGoal] = []

    for goal in goals:
        if not goal.is_active:
            updated_goals.append(goal)
            continue

        target = to_minor_units(goal.target_amount)
        current = to_minor_units(goal.current_amount)

        if current >= target:
            # Funded by a user edit; close it without allocating
            updated_goals.append(goal.model_copy(update={"is_completed": True}))
            events.append(NotificationBuilder.goal_completed(
                goal_id=goal.id,
                goal_name=goal.name,
            ))
            continue

        desired = percentage_of(amount, goal.auto_allocate_percentage)
        allocation = min(desired, target - current)

        if allocation <= 0 or remaining < allocation:
            updated_goals.append(goal)
            continue

        new_current = current + allocation
        if new_current > target:
            raise AllocationCapError(
                f"Goal {goal.id} would reach {from_minor_units(new_current)} "
                f"above its target {goal.target_amount}"
            )

        remaining -= allocation
        completed = new_current >= target

        updated_goals.append(goal.model_copy(update={
            "current_amount": from_minor_units(new_current),
            "is_completed": goal.is_completed or completed,
        }))
        splits.append(SplitTransaction(
            amount=from_minor_units(allocation),
            category=goal.category,
            main_category=MainCategory.PERSONAL,
            description=f"Auto-allocation to {goal.name}",
        ))
        events.append(NotificationBuilder.goal_allocated(
            goal_id=goal.id,
            goal_name=goal.name,
            amount=from_minor_units(allocation),
            currency=currency,
        ))
        if completed:
            events.append(NotificationBuilder.goal_completed(
                goal_id=goal.id,
                goal_name=goal.name,
            ))

    if not splits:
        return AllocationResult(transaction, updated_goals, events)

    splits.append(SplitTransaction(
        amount=from_minor_units(remaining),
        category=transaction.category,
        main_category=transaction.main_category,
        description=REMAINING_SPLIT_DESCRIPTION,
    ))

    split_total = sum(to_minor_units(split.amount) for split in splits)
    if split_total != amount:
        raise SplitConservationError(
            f"Splits of transaction {transaction.id} sum to "
            f"{from_minor_units(split_total)}, expected {transaction.amount}"
        )

    adjusted = transaction.model_copy(update={"is_split": True, "splits": splits})
    events.append(NotificationBuilder.transaction_split(
        transaction_id=transaction.id,
        parts=len(splits),
    ))

    logger.info(
        "income_allocated",
        transaction_id=str(transaction.id),
        goals_funded=len(splits) - 1,
        allocated=str(from_minor_units(amount - remaining)),
        remaining=str(from_minor_units(remaining)),
    )

    return AllocationResult(adjusted, updated_goals, events)
