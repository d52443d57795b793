"""ScheduledOrderWorker — self-activating poll loop for due scheduled orders."""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
from typing import TYPE_CHECKING, Any, cast

from ..instrumentation import HookOperation, instrument, notify
from ..ports.background_worker import IBackgroundWorker
from .inflight import InFlightRegistry

if TYPE_CHECKING:
    from ..domain.order import ScheduledOrder
    from ..ports.persistence import IScheduledOrderRepository
    from .service import ScheduledOrderService

logger = logging.getLogger("scheduled_orders.scheduling")


class ScheduledOrderWorker(IBackgroundWorker):
    """Reactive worker that dispatches due scheduled orders.

    Uses trigger + polling fallback: each tick queries the due backlog and
    launches one independent task per record that is not already in
    flight. Ticks never overlap. Call :meth:`trigger` to poll immediately.

    The loop only runs while there is work: :meth:`ensure_active` starts it
    when any record is pending, and a tick that finds nothing due stops it
    once no pending record remains (see :meth:`stop_if_idle`).

    Implements ``IBackgroundWorker`` (``start`` / ``stop``).
    """

    def __init__(
        self,
        service: ScheduledOrderService,
        repository: IScheduledOrderRepository,
        *,
        inflight: InFlightRegistry | None = None,
        poll_interval: float = 60.0,
        exclusive_sessions: bool = True,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self._service = service
        self._repository = repository
        self._inflight = inflight or InFlightRegistry()
        self._poll_interval = poll_interval
        self._exclusive_sessions = exclusive_sessions
        self._shutdown_timeout = shutdown_timeout
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._trigger = asyncio.Event()
        self._tick_lock = asyncio.Lock()
        self._activity_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def inflight(self) -> InFlightRegistry:
        return self._inflight

    def trigger(self) -> None:
        """Wake the worker immediately."""
        self._trigger.set()

    # -- lifecycle --------------------------------------------------------

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._trigger.set()
        self._task = asyncio.create_task(self._run_loop(), name="scheduled-order-worker")
        logger.info(
            "ScheduledOrderWorker started (poll_interval=%.1fs)",
            self._poll_interval,
        )

    async def stop(self) -> None:
        """Stop polling. Jobs already dispatched keep running."""
        self._running = False
        self._trigger.set()
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(task, timeout=self._shutdown_timeout)
        logger.info("ScheduledOrderWorker stopped")

    async def shutdown(self) -> bool:
        """Stop polling and wait for in-flight jobs.

        Returns:
            True if every job finished within ``shutdown_timeout``.
        """
        await self.stop()
        return await self._inflight.wait_all(timeout=self._shutdown_timeout)

    async def ensure_active(self) -> bool:
        """Start polling if any record is pending, due or not.

        Idempotent; call on process start and whenever a record is created.
        Serialised with :meth:`stop_if_idle` so a record added while an idle
        check is in progress always ends with the worker running.

        Returns:
            Whether the worker is running afterwards.
        """
        async with self._activity_lock:
            if self._running:
                return True
            try:
                pending = await self._repository.has_any_pending()
            except Exception:
                logger.exception("Could not check scheduled-order backlog")
                return False
            if not pending:
                logger.debug("No pending scheduled orders; worker stays stopped")
                return False
            await self.start()
            return True

    async def stop_if_idle(self) -> bool:
        """Stop polling when no record is pending at all.

        Returns:
            True if the backlog is empty (the worker is stopped afterwards).
        """
        async with self._activity_lock:
            try:
                pending = await self._repository.has_any_pending()
            except Exception:
                logger.exception("Could not check scheduled-order backlog")
                return False
            if pending:
                return False
            if self._running:
                logger.info("No pending scheduled orders left; suspending worker")
                await self.stop()
            return True

    # -- polling ----------------------------------------------------------

    async def run_once(self) -> int:
        """Execute a single poll tick (useful in tests).

        Returns:
            The number of jobs dispatched.
        """
        async with self._tick_lock:
            return cast("int", await instrument(HookOperation.SCHEDULER_TICK, self._tick))

    async def _run_loop(self) -> None:
        # A loop that stopped itself and was restarted hands over to the new task.
        while self._running and self._task is asyncio.current_task():
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._trigger.wait(), timeout=self._poll_interval)
            self._trigger.clear()
            if not self._running or self._task is not asyncio.current_task():
                break
            try:
                await self.run_once()
            except Exception:
                logger.exception("ScheduledOrderWorker error")

    async def _tick(self) -> int:
        try:
            due = await self._repository.get_due_scheduled_orders()
        except Exception:
            logger.exception("Error checking scheduled orders")
            return 0

        if not due:
            logger.debug("No due scheduled orders")
            await self.stop_if_idle()
            return 0

        logger.info("Found %d due scheduled order(s)", len(due))
        dispatched = sum(1 for order in due if self.dispatch(order))
        return dispatched

    def dispatch(self, order: ScheduledOrder) -> bool:
        """Launch ``order`` as an independent task unless it is already running.

        Returns:
            True if a task was started.
        """
        if order.id is None:
            logger.warning("Skipping scheduled order without an ID")
            return False

        session_key = order.session_id if self._exclusive_sessions else None
        if not self._inflight.claim(order.id, session_key):
            logger.debug(
                "Scheduled order %s already processing (or session %s busy), skipping",
                order.id,
                order.session_id,
            )
            return False

        try:
            task = asyncio.create_task(
                self._service.execute(order), name=f"scheduled-order-{order.id}"
            )
        except BaseException:
            self._inflight.release(order.id)
            raise
        self._inflight.register(order.id, task)
        task.add_done_callback(functools.partial(self._on_task_done, order.id))
        notify(
            HookOperation.SCHEDULER_DISPATCH,
            {"order.id": order.id, "session.id": order.session_id},
        )
        return True

    def _on_task_done(self, order_id: int, task: asyncio.Task[Any]) -> None:
        self._inflight.release(order_id)
        if task.cancelled():
            logger.warning("Scheduled order %s task was cancelled", order_id)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Error executing scheduled order %s", order_id, exc_info=exc)
