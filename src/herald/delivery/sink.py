"""Notification sinks.

A sink delivers one notification to one recipient. The dispatcher only
depends on the :class:`NotificationSink` protocol; the concrete sinks here
cover the persisted inbox with realtime push and a logging backend for
development.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from herald.common.config import HeraldConfig
from herald.common.constants import MAX_CONTENT_LENGTH, TRUNCATION_SUFFIX, NotificationKind
from herald.common.errors import DeliveryError

logger = logging.getLogger(__name__)


# --- Data Models ---


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one send attempt."""

    success: bool
    recipient_id: str
    message_id: str | None = None
    error: str | None = None


@runtime_checkable
class NotificationSink(Protocol):
    """Delivery capability consumed by the fan-out dispatcher."""

    async def send(
        self,
        recipient_id: str,
        message: str,
        kind: NotificationKind,
        title: str,
    ) -> DeliveryOutcome:
        ...


# --- Inbox Sink ---


@dataclass(frozen=True)
class InboxConfig:
    """Configuration for the inbox sink."""

    max_content_length: int = MAX_CONTENT_LENGTH

    @classmethod
    def from_config(cls, config: HeraldConfig) -> InboxConfig:
        return cls(max_content_length=config.max_content_length)


@dataclass
class InboxEntry:
    """A stored notification in a recipient's inbox."""

    id: str
    recipient_id: str
    title: str
    content: str
    kind: NotificationKind
    is_read: bool = False
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


InboxListener = Callable[[InboxEntry], None]


def truncate_content(content: str, limit: int) -> str:
    """Cut ``content`` to ``limit`` characters, ending with an ellipsis."""
    if len(content) <= limit:
        return content
    keep = max(limit - len(TRUNCATION_SUFFIX), 0)
    return content[:keep] + TRUNCATION_SUFFIX


class InboxSink:
    """Persists notifications per recipient and pushes them to listeners.

    Listeners stand in for realtime channels (websocket rooms and the like);
    a failing listener is logged and never fails the delivery.
    """

    def __init__(self, config: InboxConfig | None = None) -> None:
        self._config = config or InboxConfig()
        self._entries: dict[str, InboxEntry] = {}
        self._listeners: list[InboxListener] = []

    @property
    def config(self) -> InboxConfig:
        return self._config

    def subscribe(self, listener: InboxListener) -> None:
        self._listeners.append(listener)

    def _validate(self, recipient_id: str, message: str) -> None:
        if not isinstance(recipient_id, str) or not recipient_id.strip():
            raise DeliveryError(str(recipient_id), "invalid recipient id")
        if not message or not message.strip():
            raise DeliveryError(recipient_id, "notification content cannot be empty")

    def _push(self, entry: InboxEntry) -> None:
        for listener in self._listeners:
            try:
                listener(entry)
            except Exception:
                logger.exception("Realtime push failed for %s", entry.recipient_id)

    async def send(
        self,
        recipient_id: str,
        message: str,
        kind: NotificationKind,
        title: str,
    ) -> DeliveryOutcome:
        """Store the notification and push it to realtime listeners."""
        self._validate(recipient_id, message)
        entry = InboxEntry(
            id=uuid.uuid4().hex,
            recipient_id=recipient_id,
            title=title,
            content=truncate_content(message, self._config.max_content_length),
            kind=kind,
        )
        self._entries[entry.id] = entry
        logger.debug("Inbox entry %s created for %s", entry.id, recipient_id)
        self._push(entry)
        return DeliveryOutcome(success=True, recipient_id=recipient_id, message_id=entry.id)

    def list_for(self, recipient_id: str) -> list[InboxEntry]:
        """Entries for a recipient, newest first."""
        entries = [e for e in self._entries.values() if e.recipient_id == recipient_id]
        return sorted(entries, key=lambda e: e.sent_at, reverse=True)

    def unread_count(self, recipient_id: str) -> int:
        return sum(
            1
            for e in self._entries.values()
            if e.recipient_id == recipient_id and not e.is_read
        )

    def mark_read(self, entry_id: str) -> InboxEntry:
        """Mark one entry as read. Raises KeyError for unknown ids."""
        entry = self._entries[entry_id]
        entry.is_read = True
        return entry

    def __len__(self) -> int:
        return len(self._entries)


# --- Logging Sink ---


class LoggingSink:
    """Sink that only logs notifications. Useful for development."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level
        self._counter = 0

    async def send(
        self,
        recipient_id: str,
        message: str,
        kind: NotificationKind,
        title: str,
    ) -> DeliveryOutcome:
        self._counter += 1
        logger.log(
            self._level,
            "NOTIFICATION [%s] to %s: %s - %s",
            kind,
            recipient_id,
            title,
            message,
        )
        return DeliveryOutcome(
            success=True,
            recipient_id=recipient_id,
            message_id=f"log_{self._counter}",
        )


__all__ = [
    "DeliveryOutcome",
    "NotificationSink",
    "InboxConfig",
    "InboxEntry",
    "InboxSink",
    "LoggingSink",
    "truncate_content",
]
