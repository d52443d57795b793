"""Ports — protocols the scheduling core depends on."""

from __future__ import annotations

from .background_worker import IBackgroundWorker
from .execution import IPurchaseEngine, PurchaseRequest
from .messaging import IMessenger, MessageOptions, MessageRef
from .persistence import IScheduledOrderRepository

__all__ = [
    "IBackgroundWorker",
    "IMessenger",
    "IPurchaseEngine",
    "IScheduledOrderRepository",
    "MessageOptions",
    "MessageRef",
    "PurchaseRequest",
]
