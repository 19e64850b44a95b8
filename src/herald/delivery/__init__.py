"""Notification delivery: sinks and the fan-out dispatcher."""

from herald.delivery.dispatcher import DispatchSummary, FanOutDispatcher
from herald.delivery.sink import (
    DeliveryOutcome,
    InboxConfig,
    InboxEntry,
    InboxSink,
    LoggingSink,
    NotificationSink,
)

__all__ = [
    "DispatchSummary",
    "FanOutDispatcher",
    "DeliveryOutcome",
    "InboxConfig",
    "InboxEntry",
    "InboxSink",
    "LoggingSink",
    "NotificationSink",
]
