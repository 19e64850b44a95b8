"""Operation interception point.

After a declared operation completes, its result is planned right away and
the planned sends are dispatched in a background task. The operation's caller gets the result immediately and
never sees an error raised while notifying.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from pydantic import BaseModel

from herald.common.config import HeraldConfig
from herald.common.schemas import wrap_response
from herald.delivery.dispatcher import DispatchSummary, FanOutDispatcher
from herald.delivery.sink import NotificationSink
from herald.routing.declarations import (
    DeclarationRegistry,
    TargetDeclaration,
    operation_id_of,
)
from herald.routing.planner import DispatchPlanner, PlannerConfig, SendInstruction

logger = logging.getLogger(__name__)

current_actor_id: ContextVar[str | None] = ContextVar("current_actor_id", default=None)


@contextmanager
def actor_context(actor_id: str | None) -> Iterator[None]:
    """Bind the invoking actor for operations run inside the block."""
    token = current_actor_id.set(actor_id)
    try:
        yield
    finally:
        current_actor_id.reset(token)


def _as_tree(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result


class NotificationInterceptor:
    """Schedules a dispatch cycle for every completed, declared operation."""

    def __init__(
        self,
        registry: DeclarationRegistry,
        dispatcher: FanOutDispatcher,
        planner: DispatchPlanner | None = None,
        *,
        envelope_results: bool = False,
        history_size: int = 100,
        drain_timeout: float | None = None,
    ) -> None:
        self._registry = registry
        self._dispatcher = dispatcher
        self._planner = planner or DispatchPlanner()
        self._envelope_results = envelope_results
        self._drain_timeout = drain_timeout
        self._tasks: set[asyncio.Task[DispatchSummary | None]] = set()
        self._summaries: deque[DispatchSummary] = deque(maxlen=history_size)

    @classmethod
    def from_config(
        cls,
        registry: DeclarationRegistry,
        dispatcher: FanOutDispatcher,
        config: HeraldConfig,
        **kwargs: Any,
    ) -> NotificationInterceptor:
        planner = DispatchPlanner(PlannerConfig.from_config(config))
        kwargs.setdefault("drain_timeout", config.dispatch_timeout_seconds)
        return cls(registry, dispatcher, planner, **kwargs)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def last_summaries(self) -> list[DispatchSummary]:
        return list(self._summaries)

    def _prepare(self, result: Any) -> Any:
        payload = _as_tree(result)
        if self._envelope_results:
            payload = wrap_response(payload).model_dump()
        return payload

    def _plan(
        self,
        operation_id: str,
        result: Any,
        declaration: TargetDeclaration,
        actor_id: str | None,
    ) -> list[SendInstruction] | None:
        try:
            instructions = self._planner.plan(self._prepare(result), declaration, actor_id)
        except Exception:
            logger.exception("Notification planning failed for %s", operation_id)
            return None
        if not instructions:
            logger.debug("No notifications planned for %s", operation_id)
        return instructions

    async def _run_cycle(
        self,
        operation_id: str,
        instructions: list[SendInstruction],
    ) -> DispatchSummary | None:
        try:
            summary = await self._dispatcher.dispatch(instructions)
        except Exception:
            logger.exception("Notification dispatch failed for %s", operation_id)
            return None
        self._summaries.append(summary)
        return summary

    def notify_completed(
        self,
        operation_id: str,
        result: Any,
        actor_id: str | None = None,
    ) -> asyncio.Task[DispatchSummary | None] | None:
        """Plan notifications for a completed operation and dispatch them.

        Planning runs before this returns, against the result as it is now.
        Delivery runs in a background task. Returns that task, or None when
        the operation has no declaration, planning failed or no event loop
        is running.
        """
        declaration = self._registry.get(operation_id)
        if declaration is None:
            return None
        if actor_id is None:
            actor_id = current_actor_id.get()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("No running event loop, notifications for %s dropped", operation_id)
            return None

        instructions = self._plan(operation_id, result, declaration, actor_id)
        if instructions is None:
            return None
        task = loop.create_task(
            self._run_cycle(operation_id, instructions),
            name=f"notify:{operation_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(
        self,
        operation_id: str,
        operation: Callable[..., Awaitable[Any]],
        *args: Any,
        actor_id: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Run an operation and schedule its notifications on success.

        ``actor_id`` is not passed to the operation. It overrides the actor
        bound with :func:`actor_context`. Errors raised by the operation
        itself propagate unchanged and schedule nothing.
        """
        result = await operation(*args, **kwargs)
        self.notify_completed(operation_id, result, actor_id)
        return result

    def wrap(
        self,
        operation: Callable[..., Awaitable[Any]],
        operation_id: str | None = None,
    ) -> Callable[..., Awaitable[Any]]:
        """Return ``operation`` wrapped so each successful call notifies."""
        resolved_id = operation_id or operation_id_of(operation)
        if resolved_id is None:
            raise ValueError(f"{operation!r} is not tagged with an operation id")

        @functools.wraps(operation)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await self.run(resolved_id, operation, *args, **kwargs)

        return wrapper

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for outstanding dispatch cycles.

        Returns True when every cycle finished within ``timeout`` (defaults
        to the configured drain timeout).
        """
        if timeout is None:
            timeout = self._drain_timeout
        if not self._tasks:
            return True
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d notification cycle(s) still running after drain", len(pending))
        return not pending


def create_interceptor(
    registry: DeclarationRegistry,
    sink: NotificationSink,
    config: HeraldConfig | None = None,
    **kwargs: Any,
) -> NotificationInterceptor:
    """Wire planner, dispatcher and interceptor from one configuration."""
    config = config or HeraldConfig()
    return NotificationInterceptor.from_config(
        registry, FanOutDispatcher(sink), config, **kwargs
    )


__all__ = [
    "NotificationInterceptor",
    "create_interceptor",
    "actor_context",
    "current_actor_id",
]
