"""Tests for the ScheduledOrderWorker poll loop and dispatch guard."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from factories import ITEM, make_order

from scheduled_orders import bootstrap_scheduler
from scheduled_orders.adapters.memory import InMemoryScheduledOrderRepository
from scheduled_orders.domain import ScheduledOrder, ScheduledOrderStatus
from scheduled_orders.exceptions import PersistenceError
from scheduled_orders.instrumentation import HookRegistry, set_hook_registry
from scheduled_orders.ports import IBackgroundWorker
from scheduled_orders.scheduling import InFlightRegistry, ScheduledOrderWorker

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from factories import FakePurchaseEngine

    from scheduled_orders import SchedulerBootstrapResult, SchedulerSettings
    from scheduled_orders.adapters.memory import InMemoryMessenger


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


async def drain(worker: ScheduledOrderWorker) -> None:
    await wait_until(lambda: worker.inflight.active_count == 0)


class SlowBacklogRepository(InMemoryScheduledOrderRepository):
    """Answers the backlog check from a snapshot, then suspends until released."""

    def __init__(self) -> None:
        super().__init__()
        self.checking = asyncio.Event()
        self.release = asyncio.Event()

    async def has_any_pending(self) -> bool:
        pending = await super().has_any_pending()
        self.checking.set()
        await self.release.wait()
        return pending


# ============================================================================
# Tests: Dispatch guard
# ============================================================================


class TestDispatchGuard:
    """At most one execution per record, and per session when exclusive."""

    @pytest.mark.asyncio
    async def test_overlapping_ticks_dispatch_once(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        engine: FakePurchaseEngine,
    ) -> None:
        order = await repository.add(make_order())
        # Simulate a store that still reports the record as due.
        repository.get_due_scheduled_orders = AsyncMock(  # type: ignore[method-assign]
            return_value=[order]
        )
        engine.gate = asyncio.Event()
        worker = stack.worker

        assert await worker.run_once() == 1
        await engine.started.wait()
        assert await worker.run_once() == 0
        assert order.id in worker.inflight

        engine.gate.set()
        await drain(worker)

        assert len(engine.requests) == 1
        assert order.id not in worker.inflight

    @pytest.mark.asyncio
    async def test_second_dispatch_is_noop(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        engine: FakePurchaseEngine,
    ) -> None:
        order = await repository.add(make_order())
        engine.gate = asyncio.Event()

        assert stack.worker.dispatch(order)
        assert not stack.worker.dispatch(order)

        engine.gate.set()
        await drain(stack.worker)
        assert len(engine.requests) == 1

    @pytest.mark.asyncio
    async def test_same_session_orders_run_one_at_a_time(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        engine: FakePurchaseEngine,
    ) -> None:
        first = await repository.add(make_order(due_in=timedelta(minutes=-2)))
        await repository.add(make_order(due_in=timedelta(minutes=-1)))
        engine.gate = asyncio.Event()

        assert await stack.worker.run_once() == 1
        await engine.started.wait()
        assert stack.worker.inflight.order_ids() == frozenset({first.id})

        engine.gate.set()
        await drain(stack.worker)

        # The second record is picked up on a later tick.
        assert await stack.worker.run_once() == 1
        await drain(stack.worker)
        assert len(engine.requests) == 2

    @pytest.mark.asyncio
    async def test_non_exclusive_worker_runs_same_session_in_parallel(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        engine: FakePurchaseEngine,
    ) -> None:
        await repository.add(make_order(session_id="chat-1"))
        await repository.add(make_order(session_id="chat-1"))
        engine.gate = asyncio.Event()
        worker = ScheduledOrderWorker(
            stack.service, repository, inflight=InFlightRegistry(), exclusive_sessions=False
        )

        assert await worker.run_once() == 2

        engine.gate.set()
        await drain(worker)

    @pytest.mark.asyncio
    async def test_different_sessions_run_concurrently(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        engine: FakePurchaseEngine,
    ) -> None:
        await repository.add(make_order(session_id="chat-1"))
        await repository.add(make_order(session_id="chat-2"))
        engine.gate = asyncio.Event()

        assert await stack.worker.run_once() == 2
        await wait_until(lambda: len(engine.requests) == 2)

        engine.gate.set()
        await drain(stack.worker)

    @pytest.mark.asyncio
    async def test_failed_task_still_releases_and_logs(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        order = await repository.add(make_order())
        repository.update_status = AsyncMock(  # type: ignore[method-assign]
            side_effect=PersistenceError("db down")
        )

        with caplog.at_level(logging.ERROR, logger="scheduled_orders.scheduling"):
            assert await stack.worker.run_once() == 1
            await drain(stack.worker)

        assert order.id not in stack.worker.inflight
        assert f"Error executing scheduled order {order.id}" in caplog.text


# ============================================================================
# Tests: Tick behaviour
# ============================================================================


class TestTick:
    @pytest.mark.asyncio
    async def test_future_orders_are_not_dispatched(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        engine: FakePurchaseEngine,
    ) -> None:
        await repository.add(make_order(due_in=timedelta(hours=1)))

        assert await stack.worker.run_once() == 0
        assert engine.requests == []

    @pytest.mark.asyncio
    async def test_query_error_is_logged_and_skipped(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        repository.get_due_scheduled_orders = AsyncMock(  # type: ignore[method-assign]
            side_effect=PersistenceError("db down")
        )

        with caplog.at_level(logging.ERROR, logger="scheduled_orders.scheduling"):
            assert await stack.worker.run_once() == 0

        assert "Error checking scheduled orders" in caplog.text

    @pytest.mark.asyncio
    async def test_ticks_never_overlap(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
    ) -> None:
        active = 0
        peak = 0

        async def slow_due(now: datetime | None = None) -> list[ScheduledOrder]:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return []

        repository.get_due_scheduled_orders = slow_due  # type: ignore[method-assign]

        await asyncio.gather(*(stack.worker.run_once() for _ in range(3)))

        assert peak == 1


# ============================================================================
# Tests: Lifecycle
# ============================================================================


class TestLifecycle:
    """Self-activation and idle auto-stop."""

    @pytest.mark.asyncio
    async def test_ensure_active_with_empty_backlog_stays_stopped(
        self, stack: SchedulerBootstrapResult
    ) -> None:
        assert not await stack.worker.ensure_active()
        assert not stack.worker.is_running

    @pytest.mark.asyncio
    async def test_ensure_active_starts_when_pending_exists(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
    ) -> None:
        worker = stack.worker
        assert not await worker.ensure_active()

        await repository.add(make_order(due_in=timedelta(hours=1)))

        try:
            assert await worker.ensure_active()
            assert worker.is_running
            # Idempotent.
            assert await worker.ensure_active()
        finally:
            await worker.stop()
        assert not worker.is_running

    @pytest.mark.asyncio
    async def test_loop_stops_itself_when_backlog_empties(
        self, stack: SchedulerBootstrapResult
    ) -> None:
        worker = stack.worker

        await worker.start()
        await wait_until(lambda: not worker.is_running)

        assert not worker.is_running

    @pytest.mark.asyncio
    async def test_loop_keeps_running_while_future_orders_pending(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
    ) -> None:
        await repository.add(make_order(due_in=timedelta(hours=1)))
        worker = stack.worker

        try:
            await worker.start()
            await asyncio.sleep(0.15)
            assert worker.is_running
        finally:
            await worker.stop()

    @pytest.mark.asyncio
    async def test_scheduling_wakes_worker_and_runs_order(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        engine: FakePurchaseEngine,
    ) -> None:
        worker = stack.worker
        assert not worker.is_running

        order = await stack.service.schedule(
            owner_id="owner-1",
            session_id="chat-1",
            item=ITEM,
            quantity=3,
            due_at=datetime.now(timezone.utc) - timedelta(seconds=1),
        )
        assert order.id is not None
        order_id = order.id

        try:
            await wait_until(lambda: len(engine.requests) == 1)
            await drain(worker)
            stored = await repository.get(order_id)
            assert stored is not None
            assert stored.status == ScheduledOrderStatus.COMPLETED
            await wait_until(lambda: not worker.is_running)
        finally:
            await worker.stop()

    @pytest.mark.asyncio
    async def test_order_scheduled_during_idle_check_still_runs(
        self,
        messenger: InMemoryMessenger,
        engine: FakePurchaseEngine,
        settings: SchedulerSettings,
    ) -> None:
        repository = SlowBacklogRepository()
        stack = bootstrap_scheduler(
            repository=repository, engine=engine, messenger=messenger, settings=settings
        )
        worker = stack.worker

        try:
            await worker.start()
            # The loop's idle check has already seen an empty backlog.
            await repository.checking.wait()
            schedule = asyncio.create_task(
                stack.service.schedule(
                    owner_id="owner-1",
                    session_id="chat-1",
                    item=ITEM,
                    quantity=3,
                    due_at=datetime.now(timezone.utc) - timedelta(seconds=1),
                )
            )
            await asyncio.sleep(0.01)
            repository.release.set()
            order = await schedule
            assert order.id is not None

            await wait_until(lambda: len(engine.requests) == 1)
            await drain(worker)
            stored = await repository.get(order.id)
            assert stored is not None
            assert stored.status == ScheduledOrderStatus.COMPLETED
        finally:
            await worker.stop()

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_running_jobs(
        self,
        stack: SchedulerBootstrapResult,
        repository: InMemoryScheduledOrderRepository,
        engine: FakePurchaseEngine,
    ) -> None:
        order = await repository.add(make_order())
        assert order.id is not None
        engine.gate = asyncio.Event()
        await stack.worker.run_once()
        await engine.started.wait()

        asyncio.get_running_loop().call_later(0.02, engine.gate.set)
        assert await stack.worker.shutdown()

        stored = await repository.get(order.id)
        assert stored is not None
        assert stored.status == ScheduledOrderStatus.COMPLETED


def test_worker_satisfies_lifecycle_port(stack: SchedulerBootstrapResult) -> None:
    assert isinstance(stack.worker, IBackgroundWorker)


@pytest.mark.asyncio
async def test_dispatch_is_reported_to_hooks(
    stack: SchedulerBootstrapResult,
    repository: InMemoryScheduledOrderRepository,
) -> None:
    seen: list[dict[str, Any]] = []

    async def hook(
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        seen.append(attributes)
        return await next_handler()

    registry = HookRegistry()
    registry.register(hook, operations=["scheduler.dispatch"])
    set_hook_registry(registry)
    order = await repository.add(make_order())

    assert stack.worker.dispatch(order)
    await drain(stack.worker)

    assert seen == [{"order.id": order.id, "session.id": "chat-1", "correlation_id": None}]
