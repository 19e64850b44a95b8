"""Dispatch planning.

Turns a target declaration plus an operation result into concrete send
instructions. Planning is synchronous and side-effect free apart from
logging; it never raises for missing recipients or failing content.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from herald.common.config import HeraldConfig
from herald.common.constants import DEFAULT_TITLE, ENVELOPE_KEYS, NotificationKind
from herald.common.errors import ContentResolutionError
from herald.routing.declarations import Content, TargetDeclaration, render_content
from herald.routing.paths import resolve_path, strip_envelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannerConfig:
    """Configuration for the dispatch planner."""

    envelope_keys: tuple[str, ...] = ENVELOPE_KEYS
    default_title: str = DEFAULT_TITLE

    @classmethod
    def from_config(cls, config: HeraldConfig) -> PlannerConfig:
        return cls(
            envelope_keys=tuple(config.envelope_keys),
            default_title=config.default_title,
        )


@dataclass(frozen=True)
class SendInstruction:
    """One fully resolved notification, ready for a sink."""

    recipient_id: str
    message: str
    title: str
    kind: NotificationKind


class DispatchPlanner:
    """Builds send instructions from declarations and operation results.

    Order of the produced instructions:
    - primary target recipients, in resolver order
    - the invoking actor, when the primary target has no path
    - each additional target in declaration order
    """

    def __init__(self, config: PlannerConfig | None = None) -> None:
        self._config = config or PlannerConfig()

    @property
    def config(self) -> PlannerConfig:
        return self._config

    def _candidates(self, result: Any, path: str) -> list[tuple[Any, str]]:
        candidates: list[tuple[Any, str]] = [(result, path)]
        if isinstance(result, Mapping):
            for key in self._config.envelope_keys:
                if key in result:
                    candidates.append((result[key], path))
        unwrapped = strip_envelope(path, self._config.envelope_keys)
        if unwrapped is not None:
            candidates.append((result, unwrapped))
        return candidates

    def resolve_recipients(self, result: Any, path: str) -> list[str]:
        """Resolve ``path`` with the envelope fallback.

        The raw result is tried first, then the result nested under each
        envelope key, then the path without its envelope prefix. The first
        non-empty resolution wins.
        """
        for tree, candidate in self._candidates(result, path):
            ids = resolve_path(tree, candidate)
            if ids:
                return ids
        return []

    def _instructions(
        self,
        recipients: list[str],
        result: Any,
        message: Content | None,
        title: Content | None,
        kind: NotificationKind,
        label: str,
    ) -> list[SendInstruction]:
        text = render_content(message, result, target=label, field_name="message")
        if text is None:
            return []
        heading = render_content(
            title,
            result,
            default=self._config.default_title,
            target=label,
            field_name="title",
        )
        logger.debug("Generated message for %s: %r", label, text)
        return [
            SendInstruction(recipient_id=recipient, message=text, title=heading, kind=kind)
            for recipient in recipients
        ]

    def _plan_target(
        self,
        result: Any,
        recipients: list[str],
        message: Content | None,
        title: Content | None,
        kind: NotificationKind,
        label: str,
    ) -> list[SendInstruction]:
        if not recipients:
            logger.warning("No recipients found for %s", label)
            return []
        try:
            return self._instructions(recipients, result, message, title, kind, label)
        except ContentResolutionError:
            logger.exception("Skipping %s: content could not be resolved", label)
            return []

    def plan(
        self,
        result: Any,
        declaration: TargetDeclaration,
        actor_id: str | None = None,
    ) -> list[SendInstruction]:
        """Return the send instructions for one completed operation."""
        instructions: list[SendInstruction] = []

        if declaration.target_path is not None:
            label = f"target {declaration.target_path!r}"
            recipients = self.resolve_recipients(result, declaration.target_path)
            logger.debug("Extracted recipient ids for %s: %s", label, recipients)
            instructions.extend(
                self._plan_target(
                    result,
                    recipients,
                    declaration.message,
                    declaration.title,
                    declaration.kind,
                    label,
                )
            )
        elif declaration.message is not None and actor_id is not None:
            logger.debug("Using invoking actor as recipient: %s", actor_id)
            instructions.extend(
                self._plan_target(
                    result,
                    [actor_id],
                    declaration.message,
                    declaration.title,
                    declaration.kind,
                    "invoking actor",
                )
            )

        for index, extra in enumerate(declaration.additional):
            label = f"additional target #{index} {extra.target_path!r}"
            recipients = self.resolve_recipients(result, extra.target_path)
            logger.debug("Extracted recipient ids for %s: %s", label, recipients)
            instructions.extend(
                self._plan_target(
                    result, recipients, extra.message, extra.title, extra.kind, label
                )
            )

        return instructions


__all__ = ["PlannerConfig", "SendInstruction", "DispatchPlanner"]
