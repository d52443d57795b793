"""DeliveryCoordinator — reconciles a job's terminal outcome with the user.

Per outcome, strictly in order:

* **Completed** — persist ``completed`` → remove ephemeral messages → send
  the completion notice → deliver code files → release the engine's result
  buffer → clear session tracking.
* **Cancelled** — persist ``cancelled`` → remove ephemeral messages → send
  either the "nothing processed" notice, or a summary plus partial files
  and a "remaining not processed" notice → clear session tracking.
* **Failed** — persist ``failed`` → send the classified error message →
  clear session tracking.

Status is always persisted before anything is sent, so a delivery failure
never leaves a record stuck in ``processing``. Session tracking is cleared
even when delivery raises.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from ..domain.order import ScheduledOrderStatus
from ..domain.outcomes import OrderCancelled, OrderCompleted, OrderFailed
from ..instrumentation import HookOperation, instrument
from . import notices
from .formatting import format_pins_plain

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..domain.order import ScheduledOrder
    from ..domain.outcomes import OrderOutcome
    from ..domain.results import ExecutionResult
    from ..ports.messaging import IMessenger
    from ..ports.persistence import IScheduledOrderRepository
    from .artifacts import ArtifactSender
    from .progress import ProgressReporter
    from .tracking import SessionTracker

logger = logging.getLogger("scheduled_orders.delivery")

CANCELLED_REASON = "Cancelled by user"


class DeliveryCoordinator:
    """Turns job outcomes into persisted status and user-facing messages."""

    def __init__(
        self,
        *,
        repository: IScheduledOrderRepository,
        messenger: IMessenger,
        tracker: SessionTracker,
        progress: ProgressReporter,
        artifacts: ArtifactSender,
        release_result: Callable[[int], None] | None = None,
        send_failed_report: bool = True,
    ) -> None:
        self._repository = repository
        self._messenger = messenger
        self._tracker = tracker
        self._progress = progress
        self._artifacts = artifacts
        self._release_result = release_result
        self._send_failed_report = send_failed_report

    # -- job start --------------------------------------------------------

    async def announce_start(self, order: ScheduledOrder) -> None:
        """Send the "order starting" notice and track its handle (best-effort)."""
        text = notices.ORDER_STARTING.render(
            game_name=order.item.game_name,
            card_name=order.item.card_name,
            quantity=order.quantity,
        )
        try:
            message_ref = await self._messenger.send(
                order.session_id, text, self._progress.options_for(order.session_id)
            )
        except Exception:  # noqa: BLE001
            logger.exception(
                "Could not send start notification for scheduled order %s", order.id
            )
            return
        self._tracker.set_status_message(order.session_id, _order_id(order), message_ref)

    def progress_sink(self, order: ScheduledOrder) -> Callable[[int, int], Awaitable[None]]:
        return self._progress.sink(order.session_id, _order_id(order))

    # -- job end ----------------------------------------------------------

    async def deliver(self, order: ScheduledOrder, outcome: OrderOutcome) -> None:
        """Route ``outcome`` to its branch inside the instrumentation hooks."""
        handler: Callable[[], Awaitable[None]]
        if isinstance(outcome, OrderCompleted):
            operation = HookOperation.DELIVERY_COMPLETED
            handler = functools.partial(self.on_completed, order, outcome.result)
        elif isinstance(outcome, OrderCancelled):
            operation = HookOperation.DELIVERY_CANCELLED
            handler = functools.partial(self.on_cancelled, order, outcome.partial)
        elif isinstance(outcome, OrderFailed):
            operation = HookOperation.DELIVERY_FAILED
            handler = functools.partial(self.on_failed, order, outcome)
        else:
            raise TypeError(f"Unknown order outcome {type(outcome).__name__}")

        await instrument(
            operation, handler, {"order.id": order.id, "session.id": order.session_id}
        )

    async def on_completed(self, order: ScheduledOrder, result: ExecutionResult) -> None:
        order_id = _order_id(order)
        try:
            await self._repository.update_status(
                order_id, ScheduledOrderStatus.COMPLETED, result_order_id=result.order_id
            )
            await self._remove_ephemeral(order)

            failed_line = (
                notices.FAILED_UNITS_LINE.render(failed=result.failed_count)
                if result.failed_count
                else ""
            )
            await self._messenger.send(
                order.session_id,
                notices.ORDER_COMPLETED.render(
                    order_id=result.order_id,
                    completed=result.completed_purchases,
                    total=result.cards_count,
                    failed_line=failed_line,
                    valid=result.valid_count,
                ),
            )
            await self._send_results(order, result, partial=False)
            logger.info("Successfully completed scheduled order %s", order.id)
        finally:
            self._tracker.clear(order.session_id, order_id)

    async def on_cancelled(self, order: ScheduledOrder, partial: ExecutionResult) -> None:
        order_id = _order_id(order)
        try:
            await self._repository.update_status(
                order_id, ScheduledOrderStatus.CANCELLED, reason=CANCELLED_REASON
            )
            await self._remove_ephemeral(order)

            if partial.valid_count == 0:
                await self._messenger.send(order.session_id, notices.ORDER_CANCELLED_EMPTY.render())
                logger.info("Scheduled order %s cancelled with no cards processed", order.id)
                return

            counts_template = (
                notices.CANCELLED_COUNTS_WITH_FAILED
                if partial.failed_count
                else notices.CANCELLED_COUNTS
            )
            await self._messenger.send(
                order.session_id,
                notices.ORDER_CANCELLED.render(
                    order_id=partial.order_id,
                    counts=counts_template.render(
                        valid=partial.valid_count, failed=partial.failed_count
                    ),
                ),
            )
            await self._send_results(order, partial, partial=True)

            if partial.remaining > 0:
                await self._messenger.send(
                    order.session_id,
                    notices.REMAINING_NOT_PROCESSED.render(remaining=partial.remaining),
                )
            logger.info(
                "Scheduled order %s cancelled after %d valid card(s)",
                order.id,
                partial.valid_count,
            )
        finally:
            self._tracker.clear(order.session_id, order_id)

    async def on_failed(self, order: ScheduledOrder, outcome: OrderFailed) -> None:
        order_id = _order_id(order)
        try:
            await self._repository.update_status(
                order_id, ScheduledOrderStatus.FAILED, reason=outcome.reason.detail
            )
            try:
                await self._messenger.send(
                    order.session_id,
                    notices.ORDER_FAILED.render(reason=outcome.reason.message),
                )
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Could not send error notification for scheduled order %s", order.id
                )
        finally:
            self._tracker.clear(order.session_id, order_id)

    # -- internal ---------------------------------------------------------

    async def _send_results(
        self, order: ScheduledOrder, result: ExecutionResult, *, partial: bool
    ) -> None:
        await self._artifacts.send_pin_files(
            order.session_id,
            result.order_id,
            result.pins,
            partial=partial,
            fallback=format_pins_plain,
        )
        if self._send_failed_report and result.failed_count:
            await self._artifacts.send_failed_report(
                order.session_id, result.order_id, result.pins
            )
        if self._release_result is not None and result.order_id is not None:
            self._release_result(result.order_id)

    async def _remove_ephemeral(self, order: ScheduledOrder) -> None:
        state = self._tracker.get(order.session_id, _order_id(order))
        if state is None:
            return
        for message_ref in (state.progress_message, state.status_message):
            if message_ref is None:
                continue
            try:
                await self._messenger.delete(order.session_id, message_ref)
            except Exception:  # noqa: BLE001
                logger.debug(
                    "Could not delete message %s in session %s",
                    message_ref,
                    order.session_id,
                    exc_info=True,
                )
        self._tracker.set_progress_message(order.session_id, state.order_id, None)
        self._tracker.set_status_message(order.session_id, state.order_id, None)


def _order_id(order: ScheduledOrder) -> int:
    if order.id is None:
        raise ValueError("Scheduled order has not been persisted")
    return order.id
