"""Target declarations and the operation registry.

A declaration says who gets notified when an operation completes, what the
message and title are, and which notification kind to use. Declarations are
built once at startup, normalized at construction time and never mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, TypeVar, Union

from herald.common.constants import NotificationKind
from herald.common.errors import ContentResolutionError, DeclarationError
from herald.routing.paths import normalize_path

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

OPERATION_ID_ATTR = "__herald_operation_id__"


# --- Content variants ---


@dataclass(frozen=True)
class LiteralText:
    """Fixed message or title text."""

    text: str

    def render(self, result: Any) -> str:
        return self.text


@dataclass(frozen=True)
class DerivedText:
    """Message or title computed from the operation result."""

    build: Callable[[Any], Any]

    def render(self, result: Any) -> str:
        value = self.build(result)
        if value is None:
            raise ValueError("content function returned None")
        return str(value)


Content = Union[LiteralText, DerivedText]
ContentInput = Union[str, Callable[[Any], Any], LiteralText, DerivedText, None]


def as_content(value: ContentInput) -> Content | None:
    """Coerce an authored message/title into a content variant."""
    if value is None or isinstance(value, (LiteralText, DerivedText)):
        return value
    if isinstance(value, str):
        return LiteralText(value)
    if callable(value):
        return DerivedText(value)
    raise DeclarationError(f"Unsupported content type: {type(value).__name__}")


def render_content(
    content: Content | None,
    result: Any,
    *,
    default: str | None = None,
    target: str = "primary",
    field_name: str = "message",
) -> str | None:
    """Render a content variant against ``result``.

    Returns ``default`` when no content was declared. Failures of derived
    content are raised as :class:`ContentResolutionError`.
    """
    if content is None:
        return default
    try:
        return content.render(result)
    except Exception as exc:
        raise ContentResolutionError(target, field_name, exc) from exc


def _normalized(path: str | None) -> str | None:
    if path is None:
        return None
    if not path.strip():
        raise DeclarationError("target_path must not be empty")
    return normalize_path(path)


# --- Declarations ---


@dataclass(frozen=True)
class AdditionalTarget:
    """A secondary recipient group with its own path and content."""

    target_path: str
    message: ContentInput
    kind: NotificationKind = NotificationKind.SYSTEM
    title: ContentInput = None

    def __post_init__(self) -> None:
        if not self.target_path:
            raise DeclarationError("additional targets require a target_path")
        if self.message is None:
            raise DeclarationError(
                f"additional target {self.target_path!r} declares no message"
            )
        object.__setattr__(self, "target_path", _normalized(self.target_path))
        object.__setattr__(self, "message", as_content(self.message))
        object.__setattr__(self, "title", as_content(self.title))


@dataclass(frozen=True)
class TargetDeclaration:
    """Everything needed to notify people after one operation completes.

    Without ``target_path`` the invoking actor is notified, provided a
    message is declared.
    """

    kind: NotificationKind = NotificationKind.SYSTEM
    message: ContentInput = None
    title: ContentInput = None
    target_path: str | None = None
    additional: tuple[AdditionalTarget, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.target_path is not None and self.message is None:
            raise DeclarationError(
                f"target_path {self.target_path!r} declared without a message"
            )
        object.__setattr__(self, "target_path", _normalized(self.target_path))
        object.__setattr__(self, "message", as_content(self.message))
        object.__setattr__(self, "title", as_content(self.title))
        object.__setattr__(self, "additional", tuple(self.additional))

    @property
    def notifies_actor(self) -> bool:
        return self.target_path is None and self.message is not None

    @property
    def target_count(self) -> int:
        primary = 1 if self.target_path is not None or self.message is not None else 0
        return primary + len(self.additional)


# --- Registry ---


class DeclarationRegistry:
    """Write-once mapping from operation id to its target declaration."""

    def __init__(self) -> None:
        self._declarations: dict[str, TargetDeclaration] = {}

    def register(self, operation_id: str, declaration: TargetDeclaration) -> None:
        """Attach a declaration to an operation.

        Raises DeclarationError if the operation already has one.
        """
        if not operation_id:
            raise DeclarationError("operation_id must not be empty")
        if operation_id in self._declarations:
            raise DeclarationError(f"Operation {operation_id!r} is already declared")
        self._declarations[operation_id] = declaration
        logger.debug("Declaration registered: %s", operation_id)

    def declares(self, operation_id: str, declaration: TargetDeclaration) -> Callable[[F], F]:
        """Decorator form of :meth:`register` that also tags the operation."""

        def decorator(operation: F) -> F:
            self.register(operation_id, declaration)
            setattr(operation, OPERATION_ID_ATTR, operation_id)
            return operation

        return decorator

    def get(self, operation_id: str) -> TargetDeclaration | None:
        return self._declarations.get(operation_id)

    def operation_ids(self) -> list[str]:
        return list(self._declarations)

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._declarations

    def __len__(self) -> int:
        return len(self._declarations)

    def __iter__(self) -> Iterator[str]:
        return iter(self._declarations)


def operation_id_of(operation: Callable[..., Any]) -> str | None:
    """Return the operation id a callable was tagged with, if any."""
    return getattr(operation, OPERATION_ID_ATTR, None)


__all__ = [
    "LiteralText",
    "DerivedText",
    "Content",
    "ContentInput",
    "as_content",
    "render_content",
    "AdditionalTarget",
    "TargetDeclaration",
    "DeclarationRegistry",
    "operation_id_of",
    "OPERATION_ID_ATTR",
]
