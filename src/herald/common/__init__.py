"""Common constants, configuration, errors and schemas for Herald."""

from herald.common.config import HeraldConfig, configure_logging
from herald.common.constants import (
    DEFAULT_TITLE,
    ENVELOPE_KEY,
    ENVELOPE_KEYS,
    NotificationKind,
)
from herald.common.errors import (
    ContentResolutionError,
    DeclarationError,
    DeliveryError,
    HeraldError,
)
from herald.common.schemas import ResponseEnvelope, wrap_response

__all__ = [
    "HeraldConfig",
    "configure_logging",
    "NotificationKind",
    "DEFAULT_TITLE",
    "ENVELOPE_KEY",
    "ENVELOPE_KEYS",
    "HeraldError",
    "DeclarationError",
    "ContentResolutionError",
    "DeliveryError",
    "ResponseEnvelope",
    "wrap_response",
]
