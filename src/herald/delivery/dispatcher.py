"""Fan-out notification dispatch.

Sends every planned instruction to the sink concurrently and waits for all
of them. A failing send is recorded as a failed outcome and never affects
its siblings or the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from herald.delivery.sink import DeliveryOutcome, NotificationSink
from herald.routing.planner import SendInstruction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchSummary:
    """Aggregate result of one dispatch cycle."""

    attempted: int
    succeeded: int
    failed: int
    outcomes: tuple[DeliveryOutcome, ...] = ()
    started_at: float = field(default_factory=time.time)
    duration_ms: float = 0.0

    @property
    def failures(self) -> list[DeliveryOutcome]:
        return [o for o in self.outcomes if not o.success]

    def as_dict(self) -> dict[str, Any]:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duration_ms": round(self.duration_ms, 3),
        }


class FanOutDispatcher:
    """Delivers send instructions concurrently through one sink."""

    def __init__(self, sink: NotificationSink) -> None:
        self._sink = sink
        self._totals = {"cycles": 0, "attempted": 0, "succeeded": 0, "failed": 0}

    @property
    def sink(self) -> NotificationSink:
        return self._sink

    async def _deliver(self, instruction: SendInstruction) -> DeliveryOutcome:
        logger.debug("Sending notification to %s", instruction.recipient_id)
        try:
            outcome = await self._sink.send(
                instruction.recipient_id,
                instruction.message,
                instruction.kind,
                instruction.title,
            )
        except Exception as exc:
            outcome = DeliveryOutcome(
                success=False,
                recipient_id=instruction.recipient_id,
                error=str(exc) or type(exc).__name__,
            )
        if not isinstance(outcome, DeliveryOutcome):
            outcome = DeliveryOutcome(
                success=False,
                recipient_id=instruction.recipient_id,
                error=f"sink returned {type(outcome).__name__}",
            )
        if not outcome.success:
            logger.warning(
                "Notification to %s failed: %s", instruction.recipient_id, outcome.error
            )
        return outcome

    async def dispatch(self, instructions: Sequence[SendInstruction]) -> DispatchSummary:
        """Send all instructions concurrently and join on every one of them."""
        started = time.time()
        clock = time.perf_counter()
        outcomes = await asyncio.gather(*(self._deliver(i) for i in instructions))
        succeeded = sum(1 for o in outcomes if o.success)
        summary = DispatchSummary(
            attempted=len(outcomes),
            succeeded=succeeded,
            failed=len(outcomes) - succeeded,
            outcomes=tuple(outcomes),
            started_at=started,
            duration_ms=(time.perf_counter() - clock) * 1000.0,
        )
        self._record(summary)
        if summary.attempted:
            logger.info(
                "Notifications sent: attempted=%d succeeded=%d failed=%d",
                summary.attempted,
                summary.succeeded,
                summary.failed,
            )
        return summary

    def _record(self, summary: DispatchSummary) -> None:
        self._totals["cycles"] += 1
        self._totals["attempted"] += summary.attempted
        self._totals["succeeded"] += summary.succeeded
        self._totals["failed"] += summary.failed

    def get_stats(self) -> dict[str, int]:
        """Running totals across all dispatch cycles."""
        return dict(self._totals)


__all__ = ["DispatchSummary", "FanOutDispatcher"]
