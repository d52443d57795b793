"""InFlightRegistry — which scheduled orders are executing right now."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

logger = logging.getLogger("scheduled_orders.scheduling")


class InFlightRegistry:
    """Dispatch guard plus task handles for running jobs.

    An order is claimed before its task is created and released when the
    task finishes, whatever the outcome. While claimed, a second claim for
    the same order, or for any order on the same session when a session
    key is given, is refused.

    Thread-safe; the worker, job tasks and cancellation requests may all
    touch it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[int, str | None] = {}
        self._tasks: dict[int, asyncio.Task[Any]] = {}

    def claim(self, order_id: int, session_id: str | None = None) -> bool:
        """Reserve ``order_id`` (and ``session_id``) for one execution.

        Returns:
            False if the order, or another order on the session, is running.
        """
        with self._lock:
            if order_id in self._sessions:
                return False
            if session_id is not None and session_id in self._sessions.values():
                return False
            self._sessions[order_id] = session_id
            return True

    def register(self, order_id: int, task: asyncio.Task[Any]) -> None:
        """Attach the running task for a claimed order."""
        with self._lock:
            if order_id not in self._sessions:
                raise KeyError(f"Order {order_id} was not claimed")
            self._tasks[order_id] = task

    def release(self, order_id: int) -> None:
        with self._lock:
            self._sessions.pop(order_id, None)
            self._tasks.pop(order_id, None)

    def __contains__(self, order_id: object) -> bool:
        with self._lock:
            return order_id in self._sessions

    def is_session_busy(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions.values()

    def order_ids(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._sessions)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    async def wait_all(self, timeout: float | None = None) -> bool:
        """Wait for every registered task to finish.

        Returns:
            True if all finished within ``timeout``.
        """
        with self._lock:
            tasks = list(self._tasks.values())
        if not tasks:
            return True
        _done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning("%d scheduled order task(s) still running", len(pending))
        return not pending
