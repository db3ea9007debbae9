"""Notification collaborators for pledge events."""

from pledge_ledger.sinks.base import (
    NotificationDispatcher,
    Notifier,
    PledgeNotification,
)
from pledge_ledger.sinks.console import ConsoleNotifier
from pledge_ledger.sinks.kafka import KafkaNotifier

__all__ = [
    "ConsoleNotifier",
    "KafkaNotifier",
    "NotificationDispatcher",
    "Notifier",
    "PledgeNotification",
]
