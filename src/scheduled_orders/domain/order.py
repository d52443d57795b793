"""ScheduledOrder — persisted "run this purchase later" record."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import OrderStateError


class ScheduledOrderStatus(str, Enum):
    """Lifecycle states for a scheduled order."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {
        ScheduledOrderStatus.COMPLETED,
        ScheduledOrderStatus.FAILED,
        ScheduledOrderStatus.CANCELLED,
    }
)

_ALLOWED_TRANSITIONS: dict[ScheduledOrderStatus, frozenset[ScheduledOrderStatus]] = {
    ScheduledOrderStatus.PENDING: frozenset(
        {ScheduledOrderStatus.PROCESSING, ScheduledOrderStatus.CANCELLED}
    ),
    ScheduledOrderStatus.PROCESSING: _TERMINAL_STATUSES,
    ScheduledOrderStatus.COMPLETED: frozenset(),
    ScheduledOrderStatus.FAILED: frozenset(),
    ScheduledOrderStatus.CANCELLED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ItemSpec(BaseModel):
    """Storefront identifiers for the product being bought."""

    model_config = ConfigDict(frozen=True)

    game_name: str
    game_url: str
    card_name: str
    card_index: int = Field(ge=0)


class ScheduledOrder(BaseModel):
    """Deferred purchase request.

    Status transitions::

        pending    → processing (worker picks it up)
        pending    → cancelled  (owner cancels before it runs)
        processing → completed | failed | cancelled

    Records are never deleted; terminal ones are kept for history.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: int | None = None
    owner_id: str
    session_id: str
    item: ItemSpec
    quantity: int = Field(ge=1)
    status: ScheduledOrderStatus = ScheduledOrderStatus.PENDING
    due_at: datetime
    result_order_id: int | None = None
    failure_reason: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    executed_at: datetime | None = None

    @field_validator("due_at")
    @classmethod
    def _due_at_is_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def is_due(self, now: datetime | None = None) -> bool:
        if self.status != ScheduledOrderStatus.PENDING:
            return False
        return self.due_at <= (now or _utcnow())

    def can_transition_to(self, status: ScheduledOrderStatus) -> bool:
        return status in _ALLOWED_TRANSITIONS[self.status]

    def transition_to(
        self,
        status: ScheduledOrderStatus,
        *,
        result_order_id: int | None = None,
        reason: str | None = None,
    ) -> None:
        """Apply a status transition, validating it against the lifecycle."""
        if not self.can_transition_to(status):
            raise OrderStateError(
                f"Cannot move scheduled order {self.id} "
                f"from {self.status.value} to {status.value}"
            )
        self.status = status
        if result_order_id is not None:
            self.result_order_id = result_order_id
        if reason is not None:
            self.failure_reason = reason
        if status in (ScheduledOrderStatus.COMPLETED, ScheduledOrderStatus.FAILED):
            self.executed_at = _utcnow()
