"""
Recurring Materializer

Walks every recurring rule from its checkpoint to "now" and emits one
concrete transaction per elapsed period.

GUARANTEES:
- Idempotent: calling again with the same `now` (and the returned rules)
  emits nothing. No duplicate billing.
- The checkpoint (last_processed) only moves forward and always equals the
  date of the latest materialized occurrence.
- Rules that start in the future, or whose end date has passed, are
  skipped silently.

Materialized income is NOT run through the savings allocator.
Auto-allocation only applies to interactively added income.
"""

from datetime import datetime
from typing import Iterable, NamedTuple

import structlog

from family_ledger.engine.errors import CheckpointRegressionError
from family_ledger.models.ledger import RecurringRule, Transaction
from family_ledger.utils.dates import ensure_utc, step

logger = structlog.get_logger(__name__)


class MaterializationResult(NamedTuple):
    new_transactions: list[Transaction]
    updated_rules: list[RecurringRule]


def is_due(rule: RecurringRule, now: datetime) -> bool:
    """Rule has started and has not ended."""
    if rule.start_date > now:
        return False
    if rule.end_date is not None and now > rule.end_date:
        return False
    return True


def occurrence_from_rule(rule: RecurringRule, when: datetime) -> Transaction:
    """Concrete transaction for one occurrence of a rule."""
    return Transaction(
        amount=rule.amount,
        date=when,
        description=rule.description,
        type=rule.type,
        category=rule.category,
        main_category=rule.main_category,
        recurring_rule_id=rule.id,
        tags=list(rule.tags),
    )


def materialize(
    rules: Iterable[RecurringRule],
    existing_transactions: Iterable[Transaction],
    now: datetime,
) -> MaterializationResult:
    """
    Catch every rule up to `now`.

    Args:
        rules: Recurring rules, in the order the caller stores them
        existing_transactions: Current ledger transactions. An occurrence
            already present for the same rule and date is not emitted twice.
        now: The instant to catch up to (inclusive)

    Returns:
        (new_transactions, updated_rules). updated_rules has every input rule
        in its original order; only rules that emitted something carry a new
        last_processed.
    """
    now = ensure_utc(now)

    already_materialized = {
        (t.recurring_rule_id, t.date)
        for t in existing_transactions
        if t.recurring_rule_id is not None
    }

    new_transactions: list[Transaction] = []
    updated_rules: list[RecurringRule] = []

    for rule in rules:
        if not is_due(rule, now):
            updated_rules.append(rule)
            continue

        cursor = rule.last_processed or rule.start_date
        next_due = step(cursor, rule.frequency.value)
        periods = 0

        while next_due <= now:
            if (rule.id, next_due) not in already_materialized:
                new_transactions.append(occurrence_from_rule(rule, next_due))
            periods += 1
            cursor = next_due
            next_due = step(cursor, rule.frequency.value)

        if periods == 0:
            updated_rules.append(rule)
            continue

        if rule.last_processed is not None and cursor < rule.last_processed:
            raise CheckpointRegressionError(
                f"Rule {rule.id} checkpoint would move from "
                f"{rule.last_processed.isoformat()} back to {cursor.isoformat()}"
            )

        updated_rules.append(rule.model_copy(update={"last_processed": cursor}))
        logger.debug(
            "recurring_rule_caught_up",
            rule_id=str(rule.id),
            frequency=rule.frequency.value,
            periods=periods,
            last_processed=cursor.isoformat(),
        )

    if new_transactions:
        logger.info(
            "recurring_materialized",
            count=len(new_transactions),
            now=now.isoformat(),
        )

    return MaterializationResult(new_transactions, updated_rules)
