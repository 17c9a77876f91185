"""
Notification Dispatcher

DESIGN DECISION: Every notification the engine produces is logged locally
and then handed to a notification sink (toast queue, push service, email,
whatever the host application uses).

The dispatcher:
- Always writes a structured log line first
- Treats delivery as fire-and-forget: a failing sink is logged, never raised,
  so a broken notifier cannot roll back a ledger change
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import structlog

from family_ledger.models.events import (
    Insight,
    Notification,
    NotificationBuilder,
    NotificationType,
)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at `level`.

    structlog renders JSON; stdlib only needs to pass the message through.
    """
    logging.basicConfig(format="%(message)s", level=level.upper())
    logging.getLogger().setLevel(level.upper())


class NotificationSink(ABC):
    """
    Where notifications go after they are logged.

    Implementations must not assume delivery is acknowledged.
    """

    @abstractmethod
    async def deliver(self, notification: Notification) -> None:
        """
        Deliver one notification.

        Raises:
            Any exception on delivery failure; the dispatcher logs it.
        """
        pass


class CollectingSink(NotificationSink):
    """Keeps delivered notifications in memory, oldest first."""

    def __init__(self):
        self.notifications: list[Notification] = []

    async def deliver(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def messages(self) -> list[str]:
        return [n.message for n in self.notifications]

    def clear(self) -> None:
        self.notifications.clear()


class NotificationDispatcher:
    """
    Central notification service.

    Logs notifications to:
    1. Structured local log (for debugging)
    2. The configured sink (for the user)
    """

    def __init__(
        self,
        sink: Optional[NotificationSink] = None,
    ):
        """
        Initialize dispatcher.

        Args:
            sink: Delivery target. If None, notifications are only logged.
        """
        self._sink = sink
        self._logger = structlog.get_logger(__name__)

    async def dispatch(self, notification: Notification) -> bool:
        """
        Log a notification and hand it to the sink.

        Returns True if the sink accepted it (or no sink is configured).
        """
        log_dict = notification.to_log_dict()

        if notification.type == NotificationType.WARNING:
            self._logger.warning("ledger_notification", **log_dict)
        else:
            self._logger.info("ledger_notification", **log_dict)

        if self._sink:
            try:
                await self._sink.deliver(notification)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "notification_delivery_failed",
                    error=str(e),
                    event_id=str(notification.event_id),
                )
                return False

        return True

    async def dispatch_all(self, notifications: Iterable[Notification]) -> int:
        """Dispatch in order. Returns how many were delivered."""
        delivered = 0
        for notification in notifications:
            if await self.dispatch(notification):
                delivered += 1
        return delivered

    async def dispatch_insights(self, insights: Iterable[Insight]) -> int:
        """Wrap recommendation insights as notifications and dispatch them."""
        return await self.dispatch_all(
            NotificationBuilder.from_insight(insight) for insight in insights
        )
