"""IScheduledOrderRepository — persistence port for scheduled orders."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from ..domain.order import ScheduledOrder, ScheduledOrderStatus


@runtime_checkable
class IScheduledOrderRepository(Protocol):
    """Port for storing scheduled orders.

    Infrastructure packages provide the real implementation;
    ``InMemoryScheduledOrderRepository`` ships in ``adapters.memory`` for
    tests and single-process deployments.

    Implementations must give read-your-writes semantics within the
    process: a status written by :meth:`update_status` is visible to the
    next :meth:`get_due_scheduled_orders` call.

    Operational queries (used by the worker):
        - ``get_due_scheduled_orders`` — pending records whose time has come.
        - ``has_any_pending`` — whether the backlog is non-empty.

    Intake / owner queries:
        - ``add``, ``get``, ``list_for_owner``, ``cancel_pending``.
    """

    async def add(self, order: ScheduledOrder) -> ScheduledOrder:
        """Persist a new record and return it with its assigned ``id``."""
        ...

    async def get(self, order_id: int) -> ScheduledOrder | None:
        """Fetch a single record by ID."""
        ...

    async def get_due_scheduled_orders(
        self, now: datetime | None = None
    ) -> list[ScheduledOrder]:
        """Return pending records with ``due_at <= now``, oldest first.

        Args:
            now: Reference time (UTC). Defaults to the current time.
        """
        ...

    async def has_any_pending(self) -> bool:
        """Whether any record is pending, regardless of its due time."""
        ...

    async def update_status(
        self,
        order_id: int,
        status: ScheduledOrderStatus,
        result_order_id: int | None = None,
        reason: str | None = None,
    ) -> ScheduledOrder:
        """Apply a status transition and persist it.

        Raises:
            OrderNotFoundError: if no record has this ID.
            OrderStateError: if the transition is not allowed.
        """
        ...

    async def list_for_owner(self, owner_id: str) -> list[ScheduledOrder]:
        """Return the owner's records, most recent ``due_at`` first."""
        ...

    async def cancel_pending(self, order_id: int, owner_id: str) -> bool:
        """Cancel a record that is still pending and belongs to ``owner_id``.

        Returns:
            True if cancelled, False if not found, owned by someone else,
            or no longer pending.
        """
        ...
