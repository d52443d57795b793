"""In-memory adapters for tests and single-process deployments."""

from .messenger import InMemoryMessenger, SentAttachment, SentMessage
from .repository import InMemoryScheduledOrderRepository

__all__ = [
    "InMemoryMessenger",
    "InMemoryScheduledOrderRepository",
    "SentAttachment",
    "SentMessage",
]
