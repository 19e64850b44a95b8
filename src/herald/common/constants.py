"""Constants and enums for Herald."""

from enum import StrEnum
from typing import Final


class NotificationKind(StrEnum):
    """Notification categories understood by the delivery sinks."""

    BOOKING = "BOOKING"
    PAYMENT = "PAYMENT"
    SHIFT = "SHIFT"
    MEMBERSHIP = "MEMBERSHIP"
    SYSTEM = "SYSTEM"


DEFAULT_TITLE: Final[str] = "Notification"
DEFAULT_RESPONSE_MESSAGE: Final[str] = "Request Successful"

# Wrapper field of the standard response envelope
ENVELOPE_KEY: Final[str] = "data"
ENVELOPE_KEYS: Final[tuple[str, ...]] = (ENVELOPE_KEY,)

ARRAY_MARKER: Final[str] = "[]"
PATH_SEPARATOR: Final[str] = "."

MAX_CONTENT_LENGTH: Final[int] = 500
TRUNCATION_SUFFIX: Final[str] = "..."

__all__ = [
    "NotificationKind",
    "DEFAULT_TITLE",
    "DEFAULT_RESPONSE_MESSAGE",
    "ENVELOPE_KEY",
    "ENVELOPE_KEYS",
    "ARRAY_MARKER",
    "PATH_SEPARATOR",
    "MAX_CONTENT_LENGTH",
    "TRUNCATION_SUFFIX",
]
