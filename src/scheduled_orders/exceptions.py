"""Exception hierarchy for scheduled-orders."""

from __future__ import annotations


class ScheduledOrdersError(Exception):
    """Root exception for the entire scheduled-orders package."""


class DomainError(ScheduledOrdersError):
    """Base class for all domain-related errors."""


class OrderStateError(DomainError):
    """Raised when a scheduled order status transition is not allowed.

    E.g. completing a record that never started processing, or cancelling
    a record that already reached a terminal state.
    """


class OrderNotFoundError(DomainError):
    """Raised when a scheduled order cannot be found by ID."""

    def __init__(self, order_id: object) -> None:
        self.order_id = order_id
        super().__init__(f"ScheduledOrder with id={order_id!r} not found")


class InfrastructureError(ScheduledOrdersError):
    """Base class for all infrastructure-related errors."""


class PersistenceError(InfrastructureError):
    """Raised when the scheduled-order store cannot be read or written."""


class MessagingError(InfrastructureError):
    """Base class for messaging-boundary failures."""


class MessageEditError(MessagingError):
    """Raised when an existing message can no longer be edited in place.

    Typical causes: the message is too old, or was already removed.
    """

    def __init__(self, session_id: str, message_ref: int, reason: str) -> None:
        self.session_id = session_id
        self.message_ref = message_ref
        super().__init__(
            f"Cannot edit message {message_ref} in session {session_id}: {reason}"
        )


class AttachmentDeliveryError(MessagingError):
    """Raised when a file attachment cannot be delivered."""

    def __init__(self, session_id: str, filename: str, reason: str) -> None:
        self.session_id = session_id
        self.filename = filename
        super().__init__(f"Failed to deliver {filename} to {session_id}: {reason}")


__all__ = [
    "AttachmentDeliveryError",
    "DomainError",
    "InfrastructureError",
    "MessageEditError",
    "MessagingError",
    "OrderNotFoundError",
    "OrderStateError",
    "PersistenceError",
    "ScheduledOrdersError",
]
