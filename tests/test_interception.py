"""Tests for the operation interception point."""

from __future__ import annotations

import asyncio
import logging

import pytest
from pydantic import BaseModel

from herald.common.config import HeraldConfig
from herald.common.constants import NotificationKind
from herald.delivery.dispatcher import FanOutDispatcher
from herald.delivery.sink import DeliveryOutcome, InboxSink
from herald.interception.interceptor import (
    NotificationInterceptor,
    actor_context,
    create_interceptor,
    current_actor_id,
)
from herald.routing.declarations import (
    AdditionalTarget,
    DeclarationRegistry,
    TargetDeclaration,
)


# --- Helpers ---


class GatedSink:
    """Sink whose sends block until the gate is opened."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.sent: list[tuple[str, str]] = []

    async def send(self, recipient_id, message, kind, title):
        await self.gate.wait()
        self.sent.append((recipient_id, message))
        return DeliveryOutcome(success=True, recipient_id=recipient_id)


def _registry() -> DeclarationRegistry:
    registry = DeclarationRegistry()
    registry.register(
        "booking.assigned",
        TargetDeclaration(
            kind=NotificationKind.BOOKING,
            message="Booking confirmed",
            target_path="customerId",
            additional=(
                AdditionalTarget(
                    target_path="technicians[].id",
                    message=lambda r: "Assigned to " + r["bookingId"],
                    kind=NotificationKind.BOOKING,
                ),
            ),
        ),
    )
    registry.register(
        "account.updated",
        TargetDeclaration(kind=NotificationKind.SYSTEM, message="Profile saved"),
    )
    return registry


def _interceptor(sink, **kwargs) -> NotificationInterceptor:
    return NotificationInterceptor(_registry(), FanOutDispatcher(sink), **kwargs)


async def assign_booking(booking_id: str) -> dict:
    return {
        "bookingId": booking_id,
        "customerId": "c-1",
        "technicians": [{"id": "t-1"}, {"id": "t-2"}],
    }


# --- Scheduling ---


@pytest.mark.asyncio
async def test_undeclared_operation_schedules_nothing():
    interceptor = _interceptor(InboxSink())
    assert interceptor.notify_completed("unknown.op", {"id": "x"}) is None
    assert interceptor.pending == 0


@pytest.mark.asyncio
async def test_run_returns_result_before_dispatch_completes():
    sink = GatedSink()
    interceptor = _interceptor(sink)

    result = await interceptor.run("booking.assigned", assign_booking, "bk-1")

    assert result["bookingId"] == "bk-1"
    assert interceptor.pending == 1
    assert sink.sent == []

    sink.gate.set()
    assert await interceptor.drain(timeout=1.0) is True
    assert interceptor.pending == 0
    assert sorted(sink.sent) == [
        ("c-1", "Booking confirmed"),
        ("t-1", "Assigned to bk-1"),
        ("t-2", "Assigned to bk-1"),
    ]
    summary = interceptor.last_summaries[-1]
    assert (summary.attempted, summary.succeeded) == (3, 3)


@pytest.mark.asyncio
async def test_result_changed_after_run_keeps_planned_recipients():
    sink = GatedSink()
    interceptor = _interceptor(sink)

    result = await interceptor.run("booking.assigned", assign_booking, "bk-3")
    result.pop("customerId")
    result["technicians"].clear()
    result["bookingId"] = "changed"

    sink.gate.set()
    assert await interceptor.drain(timeout=1.0) is True
    assert sorted(sink.sent) == [
        ("c-1", "Booking confirmed"),
        ("t-1", "Assigned to bk-3"),
        ("t-2", "Assigned to bk-3"),
    ]
    assert interceptor.last_summaries[-1].attempted == 3


@pytest.mark.asyncio
async def test_notify_completed_returns_awaitable_task():
    sink = InboxSink()
    interceptor = _interceptor(sink)
    task = interceptor.notify_completed("booking.assigned", await assign_booking("bk-2"))
    summary = await task
    assert summary.attempted == 3
    assert len(sink.list_for("t-2")) == 1


@pytest.mark.asyncio
async def test_operation_failure_propagates_and_schedules_nothing():
    interceptor = _interceptor(InboxSink())

    async def failing_operation():
        raise ValueError("booking not found")

    with pytest.raises(ValueError, match="booking not found"):
        await interceptor.run("booking.assigned", failing_operation)
    assert interceptor.pending == 0


def test_notify_without_event_loop_is_dropped(caplog):
    interceptor = _interceptor(InboxSink())
    with caplog.at_level(logging.ERROR, logger="herald.interception.interceptor"):
        assert interceptor.notify_completed("account.updated", {}, "u-1") is None
    assert "No running event loop" in caplog.text


# --- Actor Context ---


@pytest.mark.asyncio
async def test_actor_taken_from_context():
    sink = InboxSink()
    interceptor = _interceptor(sink)

    async def update_account():
        return {"id": "acc-1"}

    with actor_context("u-7"):
        assert current_actor_id.get() == "u-7"
        await interceptor.run("account.updated", update_account)
    assert current_actor_id.get() is None

    await interceptor.drain()
    assert [e.content for e in sink.list_for("u-7")] == ["Profile saved"]


@pytest.mark.asyncio
async def test_explicit_actor_overrides_context():
    sink = InboxSink()
    interceptor = _interceptor(sink)
    with actor_context("u-7"):
        await interceptor.notify_completed("account.updated", {}, actor_id="u-8")
    assert sink.list_for("u-7") == []
    assert len(sink.list_for("u-8")) == 1


@pytest.mark.asyncio
async def test_run_accepts_explicit_actor():
    sink = InboxSink()
    interceptor = _interceptor(sink)

    async def update_account():
        return {"id": "acc-1"}

    with actor_context("u-7"):
        result = await interceptor.run("account.updated", update_account, actor_id="u-1")
    await interceptor.drain()

    assert result == {"id": "acc-1"}
    assert [e.content for e in sink.list_for("u-1")] == ["Profile saved"]
    assert sink.list_for("u-7") == []


# --- Failure Isolation ---


@pytest.mark.asyncio
async def test_planning_errors_are_swallowed(caplog):
    class ExplodingPlanner:
        def plan(self, result, declaration, actor_id):
            raise RuntimeError("planner bug")

    interceptor = NotificationInterceptor(
        _registry(), FanOutDispatcher(InboxSink()), ExplodingPlanner()
    )
    with caplog.at_level(logging.ERROR, logger="herald.interception.interceptor"):
        result = await interceptor.run("booking.assigned", assign_booking, "bk-1")
        assert await interceptor.drain(timeout=1.0) is True
    assert result["customerId"] == "c-1"
    assert interceptor.pending == 0
    assert interceptor.last_summaries == []
    assert "Notification planning failed for booking.assigned" in caplog.text


@pytest.mark.asyncio
async def test_dispatch_errors_are_swallowed(caplog):
    class ExplodingDispatcher:
        async def dispatch(self, instructions):
            raise RuntimeError("dispatcher bug")

    interceptor = NotificationInterceptor(_registry(), ExplodingDispatcher())
    with caplog.at_level(logging.ERROR, logger="herald.interception.interceptor"):
        result = await interceptor.run("booking.assigned", assign_booking, "bk-1")
        assert await interceptor.drain(timeout=1.0) is True
    assert result["bookingId"] == "bk-1"
    assert interceptor.last_summaries == []
    assert "Notification dispatch failed for booking.assigned" in caplog.text


@pytest.mark.asyncio
async def test_failing_message_does_not_block_siblings():
    registry = DeclarationRegistry()
    registry.register(
        "booking.cancelled",
        TargetDeclaration(
            message=lambda r: r["missing"],
            target_path="customerId",
            additional=(AdditionalTarget(target_path="staffIds", message="Cancelled"),),
        ),
    )
    sink = InboxSink()
    interceptor = NotificationInterceptor(registry, FanOutDispatcher(sink))
    summary = await interceptor.notify_completed(
        "booking.cancelled", {"customerId": "c-1", "staffIds": ["s-1", "s-2"]}
    )
    assert summary.attempted == 2
    assert sink.list_for("c-1") == []
    assert len(sink.list_for("s-2")) == 1


# --- Result Shapes ---


@pytest.mark.asyncio
async def test_enveloped_results():
    sink = InboxSink()
    interceptor = _interceptor(sink, envelope_results=True)

    async def update_booking():
        return {
            "data": {"id": "bk-3", "status": "ASSIGNED"},
            "customerId": "c-3",
            "message": "Booking updated",
        }

    result = await interceptor.run("booking.assigned", update_booking)
    await interceptor.drain()
    assert "success" not in result
    assert [e.content for e in sink.list_for("c-3")] == ["Booking confirmed"]


@pytest.mark.asyncio
async def test_pydantic_results_are_dumped():
    class Booking(BaseModel):
        bookingId: str
        customerId: str

    sink = InboxSink()
    interceptor = _interceptor(sink)
    await interceptor.notify_completed(
        "booking.assigned", Booking(bookingId="bk-5", customerId="c-5")
    )
    assert len(sink.list_for("c-5")) == 1


# --- Wrapping ---


@pytest.mark.asyncio
async def test_wrap_tagged_operation():
    registry = DeclarationRegistry()

    @registry.declares("account.updated", TargetDeclaration(message="Saved", target_path="id"))
    async def update_account(account_id: str) -> dict:
        return {"id": account_id}

    sink = InboxSink()
    interceptor = NotificationInterceptor(registry, FanOutDispatcher(sink))
    wrapped = interceptor.wrap(update_account)
    assert wrapped.__name__ == "update_account"
    assert await wrapped("acc-9") == {"id": "acc-9"}
    await interceptor.drain()
    assert len(sink.list_for("acc-9")) == 1


def test_wrap_untagged_operation_rejected():
    async def plain():
        return None

    with pytest.raises(ValueError):
        _interceptor(InboxSink()).wrap(plain)


@pytest.mark.asyncio
async def test_drain_timeout_reports_pending():
    sink = GatedSink()
    interceptor = _interceptor(sink)
    interceptor.notify_completed("account.updated", {}, "u-1")
    assert await interceptor.drain(timeout=0.01) is False
    sink.gate.set()
    assert await interceptor.drain(timeout=1.0) is True


@pytest.mark.asyncio
async def test_create_interceptor_from_config():
    sink = InboxSink()
    interceptor = create_interceptor(
        _registry(), sink, HeraldConfig(default_title="Heads up")
    )
    await interceptor.notify_completed("account.updated", {}, "u-1")
    assert sink.list_for("u-1")[0].title == "Heads up"
