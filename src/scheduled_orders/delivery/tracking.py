"""SessionTracker — per-session message handles and cancellation flags.

State is keyed by session but owned by one job at a time: every accessor
takes the ``order_id`` of the job asking, so a stale job can never read
or clear state that belongs to a newer job for the same session.

All methods are thread-safe; ``is_cancelled`` is polled by engines that
may run their checkpoints outside the event loop thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..ports.messaging import MessageRef

logger = logging.getLogger("scheduled_orders.delivery")


@dataclass
class SessionState:
    """Tracking state for the job currently reporting to a session."""

    order_id: int
    progress_message: MessageRef | None = None
    status_message: MessageRef | None = None
    cancel_requested: bool = False
    progress_text: str | None = None
    progress_mark: tuple[int, int] | None = None
    render_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


class SessionTracker:
    """Thread-safe registry of :class:`SessionState` keyed by session ID."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, SessionState] = {}

    def open(self, session_id: str, order_id: int) -> SessionState:
        """Create the state for a job starting on ``session_id``.

        Leftover state from an earlier job for the same session is replaced.
        """
        with self._lock:
            previous = self._states.get(session_id)
            if previous is not None and previous.order_id != order_id:
                logger.warning(
                    "Session %s still tracked for order %s; replacing with order %s",
                    session_id,
                    previous.order_id,
                    order_id,
                )
            if previous is not None and previous.order_id == order_id:
                return previous
            state = SessionState(order_id=order_id)
            self._states[session_id] = state
            return state

    def get(self, session_id: str, order_id: int) -> SessionState | None:
        with self._lock:
            state = self._states.get(session_id)
            if state is None or state.order_id != order_id:
                return None
            return state

    def set_progress_message(
        self, session_id: str, order_id: int, message_ref: MessageRef | None
    ) -> None:
        with self._lock:
            state = self._states.get(session_id)
            if state is not None and state.order_id == order_id:
                state.progress_message = message_ref

    def set_status_message(
        self, session_id: str, order_id: int, message_ref: MessageRef | None
    ) -> None:
        with self._lock:
            state = self._states.get(session_id)
            if state is not None and state.order_id == order_id:
                state.status_message = message_ref

    def request_cancel(self, session_id: str) -> int | None:
        """Flag the job running on ``session_id`` for cancellation.

        Returns:
            The order ID of the flagged job, or None if nothing is tracked.
        """
        with self._lock:
            state = self._states.get(session_id)
            if state is None:
                return None
            state.cancel_requested = True
            return state.order_id

    def is_cancelled(self, session_id: str, order_id: int) -> bool:
        with self._lock:
            state = self._states.get(session_id)
            return state is not None and state.order_id == order_id and state.cancel_requested

    def cancellation_check(self, session_id: str, order_id: int) -> Callable[[], bool]:
        """Predicate handed to the engine as ``is_cancelled``."""
        return lambda: self.is_cancelled(session_id, order_id)

    def clear(self, session_id: str, order_id: int) -> SessionState | None:
        """Drop the state of ``order_id``'s job, including its cancel flag."""
        with self._lock:
            state = self._states.get(session_id)
            if state is None or state.order_id != order_id:
                return None
            del self._states[session_id]
            return state

    def is_tracked(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._states

    @property
    def session_count(self) -> int:
        with self._lock:
            return len(self._states)
