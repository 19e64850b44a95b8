"""Pydantic v2 schemas for the standard operation response envelope."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from herald.common.constants import DEFAULT_RESPONSE_MESSAGE


class ResponseEnvelope(BaseModel):
    """Envelope wrapped around every successful operation response."""

    success: bool = True
    data: Any = None
    message: str = DEFAULT_RESPONSE_MESSAGE
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    path: str = ""


def wrap_response(payload: Any, path: str = "") -> ResponseEnvelope:
    """Wrap an operation payload in the response envelope.

    A ``message`` key on a mapping payload becomes the envelope message and
    the remaining keys become ``data``. An empty remainder is stored as None.
    Non-mapping payloads are stored under ``data`` as they are.
    """
    if isinstance(payload, dict):
        rest = dict(payload)
        message = rest.pop("message", None)
        return ResponseEnvelope(
            data=rest or None,
            message=str(message) if message is not None else DEFAULT_RESPONSE_MESSAGE,
            path=path,
        )
    return ResponseEnvelope(data=payload, path=path)


__all__ = ["ResponseEnvelope", "wrap_response"]
