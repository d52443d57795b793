"""In-memory implementation of scheduled-order persistence for testing."""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ...domain.order import ScheduledOrder, ScheduledOrderStatus, ensure_utc
from ...exceptions import OrderNotFoundError
from ...ports.persistence import IScheduledOrderRepository

if TYPE_CHECKING:
    from collections.abc import Iterable


class InMemoryScheduledOrderRepository(IScheduledOrderRepository):
    """
    Dict-backed :class:`IScheduledOrderRepository` for unit / integration tests.

    Callers always receive copies, so mutating a returned record never
    changes the stored one.
    """

    def __init__(self, orders: Iterable[ScheduledOrder] = ()) -> None:
        self._orders: dict[int, ScheduledOrder] = {}
        self._ids = itertools.count(1)
        for order in orders:
            self._store(order)

    def _store(self, order: ScheduledOrder) -> ScheduledOrder:
        stored = order.model_copy(deep=True)
        if stored.id is None:
            stored.id = next(self._ids)
        self._orders[stored.id] = stored
        return stored.model_copy(deep=True)

    async def add(self, order: ScheduledOrder) -> ScheduledOrder:
        return self._store(order)

    async def get(self, order_id: int) -> ScheduledOrder | None:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order is not None else None

    async def get_due_scheduled_orders(
        self, now: datetime | None = None
    ) -> list[ScheduledOrder]:
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        due = [o for o in self._orders.values() if o.is_due(now)]
        # Oldest first
        due.sort(key=lambda o: (o.due_at, o.id or 0))
        return [o.model_copy(deep=True) for o in due]

    async def has_any_pending(self) -> bool:
        return any(o.status == ScheduledOrderStatus.PENDING for o in self._orders.values())

    async def update_status(
        self,
        order_id: int,
        status: ScheduledOrderStatus,
        result_order_id: int | None = None,
        reason: str | None = None,
    ) -> ScheduledOrder:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        order.transition_to(status, result_order_id=result_order_id, reason=reason)
        return order.model_copy(deep=True)

    async def list_for_owner(self, owner_id: str) -> list[ScheduledOrder]:
        owned = [o for o in self._orders.values() if o.owner_id == owner_id]
        owned.sort(key=lambda o: o.due_at, reverse=True)
        return [o.model_copy(deep=True) for o in owned]

    async def cancel_pending(self, order_id: int, owner_id: str) -> bool:
        order = self._orders.get(order_id)
        if order is None or order.owner_id != owner_id:
            return False
        if order.status != ScheduledOrderStatus.PENDING:
            return False
        order.transition_to(ScheduledOrderStatus.CANCELLED)
        return True

    # --- Test helpers ---

    def clear(self) -> None:
        self._orders.clear()

    @property
    def count(self) -> int:
        return len(self._orders)
