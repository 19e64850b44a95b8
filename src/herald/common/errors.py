"""Exception hierarchy for Herald."""

from __future__ import annotations


class HeraldError(Exception):
    """Base class for all Herald errors."""


class DeclarationError(HeraldError):
    """Raised when a target declaration is malformed or registered twice."""


class ContentResolutionError(HeraldError):
    """Raised when a derived message or title cannot be produced."""

    def __init__(self, target: str, field_name: str, cause: BaseException | None = None) -> None:
        self.target = target
        self.field_name = field_name
        self.cause = cause
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"Could not resolve {field_name} for target {target}{detail}")


class DeliveryError(HeraldError):
    """Raised by a sink that rejects a send."""

    def __init__(self, recipient_id: str, reason: str) -> None:
        self.recipient_id = recipient_id
        self.reason = reason
        super().__init__(f"Delivery to {recipient_id!r} rejected: {reason}")


__all__ = [
    "HeraldError",
    "DeclarationError",
    "ContentResolutionError",
    "DeliveryError",
]
