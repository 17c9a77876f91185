"""Notification delivery package."""

from family_ledger.notifications.dispatcher import (
    CollectingSink,
    NotificationDispatcher,
    NotificationSink,
    configure_logging,
)

__all__ = [
    "CollectingSink",
    "NotificationDispatcher",
    "NotificationSink",
    "configure_logging",
]
