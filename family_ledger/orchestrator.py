"""
Ledger Service

This module ties the engine, the store and the notification dispatcher
together and defines the end-to-end flows for:
1. Recurring catch-up (rules → transactions → balances → save → notify)
2. Adding income (transaction → goal allocation → balances → save → notify)
3. Edits to transactions, rules, budgets, goals and tags
4. Budget insights for a month

DESIGN DECISION: The service is the single writer.
- Every flow is load → pure engine call → save → dispatch
- Flows run one at a time under a lock, so a catch-up can never interleave
  with an income allocation
- A flow saves exactly once; if the engine raises, nothing is written
- Notifications go out only after the save succeeded
"""

import asyncio
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Optional, TypeVar
from uuid import UUID

import structlog

from family_ledger.config import Settings, get_settings
from family_ledger.engine import (
    MonthSummary,
    allocate_income,
    materialize,
    recommend,
    reconcile,
    summarize_months,
)
from family_ledger.models.events import Insight, Notification, NotificationBuilder
from family_ledger.models.ledger import (
    LedgerSnapshot,
    MainCategory,
    MonthlyBudget,
    RecurringRule,
    SavingsGoal,
    Transaction,
    TransactionTag,
    TransactionType,
)
from family_ledger.notifications import (
    NotificationDispatcher,
    NotificationSink,
    configure_logging,
)
from family_ledger.queries import TransactionFilter, filter_transactions
from family_ledger.services.storage import (
    DuplicateError,
    JsonFileLedgerStore,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)
from family_ledger.utils.dates import Clock, end_of_day, month_key, system_clock
from family_ledger.validation import (
    BulkImportValidator,
    ImportRow,
    ImportValidationResult,
)

logger = structlog.get_logger(__name__)

Entity = TypeVar("Entity", Transaction, RecurringRule, SavingsGoal, TransactionTag)


def _replace_by_id(items: list[Entity], replacement: Entity, kind: str) -> list[Entity]:
    """Swap the item with replacement.id; NotFoundError if there is none."""
    for index, item in enumerate(items):
        if item.id == replacement.id:
            return items[:index] + [replacement] + items[index + 1:]
    raise NotFoundError(f"{kind} {replacement.id} not found")


def _ensure_new_id(items: list[Entity], candidate: Entity, kind: str) -> None:
    if any(item.id == candidate.id for item in items):
        raise DuplicateError(f"{kind} {candidate.id} already exists")


class LedgerService:
    """
    Orchestrates every change to the ledger.

    The engine functions are pure; this class owns the side effects:
    reading the clock, loading and saving the snapshot, and dispatching
    the notifications the engine produced.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = system_clock,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._dispatcher = dispatcher or NotificationDispatcher()
        self._clock = clock
        self._settings = settings or get_settings()
        self._lock = asyncio.Lock()

    async def snapshot(self) -> LedgerSnapshot:
        """Current ledger state (read-only copy)."""
        return await self._store.load()

    async def _commit(
        self,
        snapshot: LedgerSnapshot,
        notifications: Optional[list[Notification]] = None,
    ) -> None:
        """Reconcile balances, save once, then notify."""
        snapshot = snapshot.model_copy(update={
            "budgets": reconcile(snapshot.transactions, snapshot.budgets),
        })
        await self._store.save(snapshot)
        if notifications:
            await self._dispatcher.dispatch_all(notifications)

    # -------------------------------------------------------------------------
    # Recurring rules
    # -------------------------------------------------------------------------

    async def catch_up(self) -> list[Transaction]:
        """
        Materialize every due recurring occurrence up to the end of today.

        Returns:
            The transactions created by this run (empty if nothing was due)
        """
        async with self._lock:
            snapshot = await self._store.load()
            now = end_of_day(self._clock())

            result = materialize(snapshot.recurring_rules, snapshot.transactions, now)
            if not result.new_transactions and result.updated_rules == snapshot.recurring_rules:
                return []

            per_rule = Counter(t.recurring_rule_id for t in result.new_transactions)
            descriptions = {rule.id: rule.description for rule in result.updated_rules}
            notifications = [
                NotificationBuilder.recurring_materialized(
                    rule_id=rule_id,
                    description=descriptions[rule_id],
                    count=count,
                )
                for rule_id, count in per_rule.items()
            ]

            await self._commit(
                snapshot.model_copy(update={
                    "transactions": snapshot.transactions + result.new_transactions,
                    "recurring_rules": result.updated_rules,
                }),
                notifications,
            )

            logger.info(
                "catch_up_completed",
                new_transactions=len(result.new_transactions),
                rules=len(per_rule),
            )
            return result.new_transactions

    async def add_recurring_rule(self, rule: RecurringRule) -> RecurringRule:
        async with self._lock:
            snapshot = await self._store.load()
            _ensure_new_id(snapshot.recurring_rules, rule, "Recurring rule")
            await self._commit(snapshot.model_copy(update={
                "recurring_rules": snapshot.recurring_rules + [rule],
            }))
            return rule

    async def update_recurring_rule(self, rule: RecurringRule) -> RecurringRule:
        async with self._lock:
            snapshot = await self._store.load()
            rules = _replace_by_id(snapshot.recurring_rules, rule, "Recurring rule")
            await self._commit(snapshot.model_copy(update={"recurring_rules": rules}))
            return rule

    async def delete_recurring_rule(self, rule_id: UUID) -> int:
        """
        Delete a rule and every transaction it generated.

        Returns:
            Number of generated transactions removed with it
        """
        async with self._lock:
            snapshot = await self._store.load()
            rules = [r for r in snapshot.recurring_rules if r.id != rule_id]
            if len(rules) == len(snapshot.recurring_rules):
                raise NotFoundError(f"Recurring rule {rule_id} not found")

            transactions = [
                t for t in snapshot.transactions if t.recurring_rule_id != rule_id
            ]
            removed = len(snapshot.transactions) - len(transactions)

            await self._commit(snapshot.model_copy(update={
                "recurring_rules": rules,
                "transactions": transactions,
            }))
            logger.info(
                "recurring_rule_deleted",
                rule_id=str(rule_id),
                transactions_removed=removed,
            )
            return removed

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        """
        Record a transaction.

        Income is auto-allocated to the active savings goals first; the
        split transaction and the goal progress are saved together.

        Returns:
            The stored transaction (split if anything was allocated)
        """
        async with self._lock:
            snapshot = await self._store.load()
            stored, goals, notifications = self._prepare_transaction(snapshot, transaction)
            await self._commit(
                snapshot.model_copy(update={
                    "transactions": snapshot.transactions + [stored],
                    "savings_goals": goals,
                }),
                notifications,
            )
            return stored

    def _prepare_transaction(
        self,
        snapshot: LedgerSnapshot,
        transaction: Transaction,
    ) -> tuple[Transaction, list[SavingsGoal], list[Notification]]:
        _ensure_new_id(snapshot.transactions, transaction, "Transaction")
        result = allocate_income(transaction, snapshot.savings_goals, snapshot.currency)
        return result.adjusted_transaction, result.updated_goals, result.events

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """Replace a transaction. Goal progress is not re-derived."""
        async with self._lock:
            snapshot = await self._store.load()
            transactions = _replace_by_id(snapshot.transactions, transaction, "Transaction")
            await self._commit(snapshot.model_copy(update={"transactions": transactions}))
            return transaction

    async def delete_transaction(self, transaction_id: UUID) -> None:
        async with self._lock:
            snapshot = await self._store.load()
            transactions = [t for t in snapshot.transactions if t.id != transaction_id]
            if len(transactions) == len(snapshot.transactions):
                raise NotFoundError(f"Transaction {transaction_id} not found")
            await self._commit(snapshot.model_copy(update={"transactions": transactions}))

    async def import_transactions(
        self,
        rows: list[ImportRow],
        type: TransactionType,
        category: str,
        main_category: MainCategory = MainCategory.PERSONAL,
    ) -> tuple[ImportValidationResult, list[Transaction]]:
        """
        Validate and record a bulk import in one save.

        Nothing is written when the batch has errors. Amounts are stored
        as absolute values under `type`; income rows are auto-allocated
        in file order.

        Returns:
            (validation_result, stored_transactions)
        """
        async with self._lock:
            snapshot = await self._store.load()
            validator = BulkImportValidator(
                max_amount=Decimal(str(self._settings.app.max_import_amount)),
                clock=self._clock,
                currency=snapshot.currency,
            )
            result = validator.validate(rows)
            if not result.is_valid:
                logger.warning(
                    "import_rejected",
                    rows=result.row_count,
                    errors=result.error_count,
                )
                return result, []

            stored: list[Transaction] = []
            notifications: list[Notification] = []

            for row in rows:
                draft = Transaction(
                    amount=abs(row.amount),
                    date=datetime.strptime(row.date, "%Y-%m-%d"),
                    description=row.description,
                    type=type,
                    category=category,
                    main_category=main_category,
                )
                transaction, goals, events = self._prepare_transaction(snapshot, draft)
                snapshot = snapshot.model_copy(update={
                    "transactions": snapshot.transactions + [transaction],
                    "savings_goals": goals,
                })
                stored.append(transaction)
                notifications.extend(events)

            await self._commit(snapshot, notifications)
            logger.info("import_completed", rows=len(stored))
            return result, stored

    # -------------------------------------------------------------------------
    # Budgets and goals
    # -------------------------------------------------------------------------

    async def update_budget(self, budget: MonthlyBudget) -> MonthlyBudget:
        """
        Insert or replace the budget for budget.month.

        The stored balance is always the reconciled one, whatever the
        caller passed in.
        """
        async with self._lock:
            snapshot = await self._store.load()
            budgets = [b for b in snapshot.budgets if b.month != budget.month] + [budget]
            await self._commit(snapshot.model_copy(update={"budgets": budgets}))
            stored = await self._store.load()
            return stored.budget_for(budget.month)

    async def add_savings_goal(self, goal: SavingsGoal) -> SavingsGoal:
        async with self._lock:
            snapshot = await self._store.load()
            _ensure_new_id(snapshot.savings_goals, goal, "Savings goal")
            await self._commit(snapshot.model_copy(update={
                "savings_goals": snapshot.savings_goals + [goal],
            }))
            return goal

    async def update_savings_goal(self, goal: SavingsGoal) -> SavingsGoal:
        """Replace a goal, e.g. after the user edited or reset it."""
        async with self._lock:
            snapshot = await self._store.load()
            goals = _replace_by_id(snapshot.savings_goals, goal, "Savings goal")
            await self._commit(snapshot.model_copy(update={"savings_goals": goals}))
            return goal

    async def delete_savings_goal(self, goal_id: UUID) -> None:
        async with self._lock:
            snapshot = await self._store.load()
            goals = [g for g in snapshot.savings_goals if g.id != goal_id]
            if len(goals) == len(snapshot.savings_goals):
                raise NotFoundError(f"Savings goal {goal_id} not found")
            await self._commit(snapshot.model_copy(update={"savings_goals": goals}))

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    async def add_tag(self, tag: TransactionTag) -> TransactionTag:
        async with self._lock:
            snapshot = await self._store.load()
            _ensure_new_id(snapshot.tags, tag, "Tag")
            await self._commit(snapshot.model_copy(update={"tags": snapshot.tags + [tag]}))
            return tag

    async def update_tag(self, tag: TransactionTag) -> TransactionTag:
        """Rename or recolor a tag; transactions keep referring to its id."""
        async with self._lock:
            snapshot = await self._store.load()
            tags = _replace_by_id(snapshot.tags, tag, "Tag")
            await self._commit(snapshot.model_copy(update={"tags": tags}))
            return tag

    async def delete_tag(self, tag_id: str) -> int:
        """
        Delete a tag and remove it from every transaction and rule.

        Returns:
            Number of transactions that carried the tag
        """
        async with self._lock:
            snapshot = await self._store.load()
            tags = [t for t in snapshot.tags if t.id != tag_id]
            if len(tags) == len(snapshot.tags):
                raise NotFoundError(f"Tag {tag_id} not found")

            untagged = 0
            transactions = []
            for transaction in snapshot.transactions:
                if tag_id in transaction.tags:
                    untagged += 1
                    transaction = transaction.model_copy(update={
                        "tags": [t for t in transaction.tags if t != tag_id],
                    })
                transactions.append(transaction)

            rules = [
                rule.model_copy(update={"tags": [t for t in rule.tags if t != tag_id]})
                if tag_id in rule.tags else rule
                for rule in snapshot.recurring_rules
            ]

            await self._commit(snapshot.model_copy(update={
                "tags": tags,
                "transactions": transactions,
                "recurring_rules": rules,
            }))
            logger.info("tag_deleted", tag_id=tag_id, transactions_untagged=untagged)
            return untagged

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    async def find_transactions(self, criteria: TransactionFilter) -> list[Transaction]:
        """Filter the ledger; search also matches the names of stored tags."""
        snapshot = await self._store.load()
        return filter_transactions(snapshot.transactions, criteria, snapshot.tag_names)

    async def insights(self, month: Optional[str] = None) -> list[Insight]:
        """
        Budget insights for a month (default: the current one).

        Insights are dispatched to the sink as well as returned.
        """
        now = self._clock()
        month = month or month_key(now)
        snapshot = await self._store.load()

        insights = recommend(
            transactions=snapshot.transactions_in(month),
            budget=snapshot.budget_for(month),
            goals=snapshot.savings_goals,
            categories=snapshot.registry,
            now=now,
            currency=snapshot.currency,
            settings=self._settings.engine,
        )
        await self._dispatcher.dispatch_insights(insights)
        return insights

    async def month_summaries(self) -> list[MonthSummary]:
        snapshot = await self._store.load()
        return summarize_months(snapshot.transactions, snapshot.budgets)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    async def run_periodic_catch_up(
        self,
        stop_event: asyncio.Event,
        interval_seconds: Optional[float] = None,
    ) -> None:
        """
        Catch up now, then again every interval until stop_event is set.

        Storage failures are logged and retried on the next tick; engine
        invariant violations propagate.
        """
        interval = interval_seconds or self._settings.app.recurring_interval_seconds
        logger.info("periodic_catch_up_started", interval_seconds=interval)

        while not stop_event.is_set():
            try:
                await self.catch_up()
            except StorageError as e:
                logger.error("periodic_catch_up_failed", error=str(e))

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

        logger.info("periodic_catch_up_stopped")


def create_ledger_service(
    store: Optional[LedgerStoreInterface] = None,
    sink: Optional[NotificationSink] = None,
    clock: Clock = system_clock,
    settings: Optional[Settings] = None,
) -> LedgerService:
    """
    Factory function to create a fully wired ledger service.

    Args:
        store: Ledger store. Defaults to the JSON file at the configured path.
        sink: Notification sink. If None, notifications are only logged.
        clock: Source of "now"
        settings: Settings to use. Defaults to get_settings().

    Returns:
        LedgerService
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    if store is None:
        store = JsonFileLedgerStore(
            path=settings.storage.path,
            default_currency=settings.app.currency,
        )

    return LedgerService(
        store=store,
        dispatcher=NotificationDispatcher(sink),
        clock=clock,
        settings=settings,
    )
