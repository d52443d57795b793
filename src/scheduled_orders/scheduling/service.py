"""ScheduledOrderService — intake, cancellation and single-job execution."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, cast

from ..classifier import classify, is_cancellation
from ..correlation import correlation_scope, order_correlation_id
from ..domain.order import ScheduledOrder, ScheduledOrderStatus, ensure_utc
from ..domain.outcomes import OrderCancelled, OrderCompleted, OrderFailed
from ..domain.results import ExecutionResult
from ..instrumentation import HookOperation, instrument
from ..ports.execution import PurchaseRequest

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from ..delivery.coordinator import DeliveryCoordinator
    from ..delivery.tracking import SessionTracker
    from ..domain.order import ItemSpec
    from ..domain.outcomes import OrderOutcome
    from ..ports.execution import IPurchaseEngine
    from ..ports.persistence import IScheduledOrderRepository

logger = logging.getLogger("scheduled_orders.scheduling")

INTERRUPTED_REASON = "Interrupted"


class ScheduledOrderService:
    """Core service for scheduled-order operations.

    Owns the top-level error boundary around the purchase engine: every
    run ends in exactly one :data:`OrderOutcome`, which is handed to the
    :class:`DeliveryCoordinator`.

    Optional ``activator``: call :meth:`set_activator` with
    ``ScheduledOrderWorker.ensure_active`` so the worker wakes when a new
    record is scheduled.
    """

    def __init__(
        self,
        *,
        repository: IScheduledOrderRepository,
        engine: IPurchaseEngine,
        coordinator: DeliveryCoordinator,
        tracker: SessionTracker,
        activator: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self._repository = repository
        self._engine = engine
        self._coordinator = coordinator
        self._tracker = tracker
        self._activator = activator

    def set_activator(self, callback: Callable[[], Awaitable[bool]] | None) -> None:
        """Set or clear the callback invoked after a record is scheduled."""
        self._activator = callback

    # -- intake -----------------------------------------------------------

    async def schedule(
        self,
        *,
        owner_id: str,
        session_id: str,
        item: ItemSpec,
        quantity: int,
        due_at: datetime,
    ) -> ScheduledOrder:
        """Persist a new pending record and make sure the worker is polling."""
        order = await self._repository.add(
            ScheduledOrder(
                owner_id=owner_id,
                session_id=session_id,
                item=item,
                quantity=quantity,
                due_at=ensure_utc(due_at),
            )
        )
        logger.info(
            "Scheduled order %s for owner %s at %s",
            order.id,
            owner_id,
            order.due_at.isoformat(),
        )
        if self._activator is not None:
            try:
                await self._activator()
            except Exception:  # noqa: BLE001
                logger.exception("Failed to activate worker after scheduling %s", order.id)
        return order

    async def list_for_owner(self, owner_id: str) -> list[ScheduledOrder]:
        return await self._repository.list_for_owner(owner_id)

    async def cancel_pending(self, order_id: int, owner_id: str) -> bool:
        """Cancel a record that has not started yet."""
        cancelled = await self._repository.cancel_pending(order_id, owner_id)
        if cancelled:
            logger.info("Scheduled order %s cancelled before execution", order_id)
        return cancelled

    def request_cancel(self, session_id: str) -> bool:
        """Ask the job running on ``session_id`` to stop at its next checkpoint."""
        order_id = self._tracker.request_cancel(session_id)
        if order_id is None:
            logger.debug("No running scheduled order to cancel for session %s", session_id)
            return False
        logger.info("Scheduled order %s cancellation requested (session %s)", order_id, session_id)
        return True

    # -- execution --------------------------------------------------------

    async def execute(self, order: ScheduledOrder) -> OrderOutcome:
        """Run one due record end to end and return its outcome."""
        if order.id is None:
            raise ValueError("Cannot execute a scheduled order that has not been persisted")

        with correlation_scope(order_correlation_id(order.id)):
            return cast(
                "OrderOutcome",
                await instrument(
                    HookOperation.ORDER_EXECUTE,
                    lambda: self._execute(order),
                    {
                        "order.id": order.id,
                        "session.id": order.session_id,
                        "order.quantity": order.quantity,
                    },
                ),
            )

    async def _execute(self, order: ScheduledOrder) -> OrderOutcome:
        order_id = cast("int", order.id)
        logger.info("Executing scheduled order %s for owner %s", order_id, order.owner_id)

        self._tracker.open(order.session_id, order_id)
        try:
            await self._repository.update_status(order_id, ScheduledOrderStatus.PROCESSING)
        except Exception:
            self._tracker.clear(order.session_id, order_id)
            raise

        try:
            await self._coordinator.announce_start(order)

            request = PurchaseRequest(
                owner_id=order.owner_id,
                item=order.item,
                quantity=order.quantity,
                on_progress=self._coordinator.progress_sink(order),
                is_cancelled=self._tracker.cancellation_check(order.session_id, order_id),
            )
            outcome = await self.run_engine(order, request)
            await self._coordinator.deliver(order, outcome)
        except asyncio.CancelledError:
            await self._mark_interrupted(order)
            raise
        return outcome

    async def _mark_interrupted(self, order: ScheduledOrder) -> None:
        """Close out a job whose task was cancelled before it finished."""
        order_id = cast("int", order.id)
        logger.warning("Scheduled order %s interrupted", order_id)
        try:
            current = await self._repository.get(order_id)
            if current is not None and current.status == ScheduledOrderStatus.PROCESSING:
                await self._repository.update_status(
                    order_id, ScheduledOrderStatus.FAILED, reason=INTERRUPTED_REASON
                )
        except Exception:  # noqa: BLE001
            logger.exception("Could not mark interrupted scheduled order %s", order_id)
        finally:
            self._tracker.clear(order.session_id, order_id)

    async def run_engine(self, order: ScheduledOrder, request: PurchaseRequest) -> OrderOutcome:
        """Invoke the engine and fold whatever happens into an outcome.

        An engine may honour a cancellation by returning its partial result
        instead of raising; a short result after a cancel request is treated
        as a cancellation.
        """
        try:
            result = await self._engine.execute(request)
        except Exception as exc:
            if is_cancellation(exc):
                partial = getattr(exc, "partial", None)
                if not isinstance(partial, ExecutionResult):
                    partial = ExecutionResult.empty(cards_count=order.quantity)
                stage = getattr(exc, "stage", None)
                logger.info(
                    "Scheduled order %s cancelled by user at stage %s", order.id, stage or "unknown"
                )
                return OrderCancelled(partial=partial, stage=stage)

            logger.error("Error executing scheduled order %s", order.id, exc_info=True)
            return OrderFailed(error=exc, reason=classify(exc))

        if request.is_cancelled() and result.remaining > 0:
            logger.info(
                "Scheduled order %s stopped by user with %d card(s) remaining",
                order.id,
                result.remaining,
            )
            return OrderCancelled(partial=result)
        return OrderCompleted(result=result)
