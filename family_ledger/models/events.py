"""
Notification and Insight Models

The engine does not talk to users. It returns notifications and insights
as plain values, and the caller hands them to a notification sink.

DESIGN DECISION: Notifications are fire-and-forget. Nothing in the
ledger depends on whether a notification was delivered.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from family_ledger.utils.money import format_currency


class NotificationType(str, Enum):
    """How the user should read a notification or insight."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"


class NotificationKind(str, Enum):
    """What produced the notification."""
    GOAL_ALLOCATION = "goal_allocation"
    GOAL_COMPLETED = "goal_completed"
    TRANSACTION_SPLIT = "transaction_split"
    RECURRING_MATERIALIZED = "recurring_materialized"
    BUDGET_INSIGHT = "budget_insight"


class Notification(BaseModel):
    """A single message for the notification sink."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the notification was produced (UTC)"
    )
    kind: NotificationKind
    type: NotificationType = NotificationType.INFO
    message: str = Field(..., max_length=500)

    # What the notification is about
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None

    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "type": self.type.value,
            "message": self.message,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "details": self.details,
        }


class Insight(BaseModel):
    """
    A read-only budget observation from the recommendation engine.
    """

    type: NotificationType
    message: str
    category: Optional[str] = None
    suggested_limit: Optional[Decimal] = None
    current_spending: Optional[Decimal] = None


class NotificationBuilder:
    """
    Helper class to build notifications with common patterns.

    Usage:
        note = NotificationBuilder.goal_allocated(goal_id, "Holiday", amount, "USD")
        note = NotificationBuilder.transaction_split(transaction_id, parts=3)
    """

    @staticmethod
    def goal_allocated(
        goal_id: UUID,
        goal_name: str,
        amount: Decimal,
        currency: str,
    ) -> Notification:
        return Notification(
            kind=NotificationKind.GOAL_ALLOCATION,
            type=NotificationType.INFO,
            entity_type="savings_goal",
            entity_id=goal_id,
            message=f"Allocated {format_currency(amount, currency)} to {goal_name}",
            details={
                "goal_name": goal_name,
                "amount": str(amount),
            },
        )

    @staticmethod
    def goal_completed(
        goal_id: UUID,
        goal_name: str,
    ) -> Notification:
        return Notification(
            kind=NotificationKind.GOAL_COMPLETED,
            type=NotificationType.SUCCESS,
            entity_type="savings_goal",
            entity_id=goal_id,
            message=f"Congratulations! You've reached your savings goal for {goal_name}",
            details={"goal_name": goal_name},
        )

    @staticmethod
    def transaction_split(
        transaction_id: UUID,
        parts: int,
    ) -> Notification:
        return Notification(
            kind=NotificationKind.TRANSACTION_SPLIT,
            type=NotificationType.INFO,
            entity_type="transaction",
            entity_id=transaction_id,
            message=f"Transaction split into {parts} parts",
            details={"parts": parts},
        )

    @staticmethod
    def recurring_materialized(
        rule_id: UUID,
        description: str,
        count: int,
    ) -> Notification:
        return Notification(
            kind=NotificationKind.RECURRING_MATERIALIZED,
            type=NotificationType.INFO,
            entity_type="recurring_rule",
            entity_id=rule_id,
            message=f"Added {count} recurring transaction(s) for {description}",
            details={"count": count},
        )

    @staticmethod
    def from_insight(insight: Insight) -> Notification:
        details: dict[str, Any] = {}
        if insight.category is not None:
            details["category"] = insight.category
        if insight.suggested_limit is not None:
            details["suggested_limit"] = str(insight.suggested_limit)
        if insight.current_spending is not None:
            details["current_spending"] = str(insight.current_spending)
        return Notification(
            kind=NotificationKind.BUDGET_INSIGHT,
            type=insight.type,
            message=insight.message[:500],
            details=details,
        )
