"""Progress rendering — one editable status message per running job."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..ports.messaging import MessageOptions
from .notices import PURCHASE_PROGRESS

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..ports.messaging import IMessenger
    from .tracking import SessionState, SessionTracker

logger = logging.getLogger("scheduled_orders.delivery")

FILLED_CELL = "█"
EMPTY_CELL = "░"


def _ratio(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return min(max(completed / total, 0.0), 1.0)


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def render_progress_bar(completed: int, total: int, width: int = 15) -> str:
    """``[█████░░░░░]`` with the filled share rounded to the nearest cell."""
    filled = _round_half_up(width * _ratio(completed, total))
    return f"[{FILLED_CELL * filled}{EMPTY_CELL * (width - filled)}]"


def progress_percentage(completed: int, total: int) -> int:
    return _round_half_up(_ratio(completed, total) * 100)


def render_progress_text(completed: int, total: int, width: int = 15) -> str:
    return PURCHASE_PROGRESS.render(
        bar=render_progress_bar(completed, total, width),
        completed=completed,
        total=total,
        percentage=progress_percentage(completed, total),
    )


class ProgressReporter:
    """Renders ``(completed, total)`` updates into the session's progress message.

    Updates for the same job are serialised. A repeated update renders the
    same text and is skipped; an update older than the last one shown (same
    total, fewer completed) is dropped. When the tracked message can no
    longer be edited a new one is sent and replaces the tracked handle.

    Reporting is best-effort: failures are logged, never raised into the
    engine.
    """

    def __init__(
        self,
        messenger: IMessenger,
        tracker: SessionTracker,
        *,
        bar_width: int = 15,
        cancel_action_prefix: str = "scheduled_cancel_",
    ) -> None:
        self._messenger = messenger
        self._tracker = tracker
        self._bar_width = bar_width
        self._cancel_action_prefix = cancel_action_prefix

    def options_for(self, session_id: str) -> MessageOptions:
        return MessageOptions(cancel_action=f"{self._cancel_action_prefix}{session_id}")

    def sink(self, session_id: str, order_id: int) -> Callable[[int, int], Awaitable[None]]:
        """Progress callback handed to the engine as ``on_progress``."""

        async def _on_progress(completed: int, total: int) -> None:
            await self.report(session_id, order_id, completed, total)

        return _on_progress

    async def report(self, session_id: str, order_id: int, completed: int, total: int) -> None:
        state = self._tracker.get(session_id, order_id)
        if state is None:
            logger.debug("Dropping progress for untracked order %s", order_id)
            return

        async with state.render_lock:
            last = state.progress_mark
            if last is not None and last[1] == total and completed < last[0]:
                logger.debug(
                    "Dropping out-of-order progress %d/%d for order %s", completed, total, order_id
                )
                return

            text = render_progress_text(completed, total, self._bar_width)
            if text == state.progress_text and state.progress_message is not None:
                return

            try:
                await self._show(session_id, state, text)
            except Exception:  # noqa: BLE001
                logger.debug("Could not send progress update for order %s", order_id, exc_info=True)
                return

            state.progress_text = text
            state.progress_mark = (completed, total)

    async def _show(self, session_id: str, state: SessionState, text: str) -> None:
        options = self.options_for(session_id)
        if state.progress_message is not None:
            try:
                await self._messenger.edit(session_id, state.progress_message, text, options)
                return
            except Exception:  # noqa: BLE001
                logger.debug("Could not edit progress message, sending new one", exc_info=True)

        message_ref = await self._messenger.send(session_id, text, options)
        self._tracker.set_progress_message(session_id, state.order_id, message_ref)
