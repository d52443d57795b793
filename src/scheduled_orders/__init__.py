"""scheduled-orders — deferred purchase-order execution engine.

Public surface:

* :func:`bootstrap_scheduler` wires the service, the worker and delivery.
* :class:`ScheduledOrderService` / :class:`ScheduledOrderWorker` for
  callers that wire things by hand.
* Domain types and the ports an application implements
  (:class:`IScheduledOrderRepository`, :class:`IPurchaseEngine`,
  :class:`IMessenger`).
"""

from __future__ import annotations

from .bootstrap import SchedulerBootstrapResult, bootstrap_scheduler
from .classifier import classify, is_cancellation
from .config import SchedulerSettings
from .domain import (
    ClassifiedError,
    ErrorCategory,
    ExecutionResult,
    ItemSpec,
    OrderCancelled,
    OrderCompleted,
    OrderFailed,
    OrderOutcome,
    PinRecord,
    PurchaseCancelledError,
    PurchaseFault,
    ScheduledOrder,
    ScheduledOrderStatus,
)
from .exceptions import (
    DomainError,
    InfrastructureError,
    OrderNotFoundError,
    OrderStateError,
    ScheduledOrdersError,
)
from .ports import IMessenger, IPurchaseEngine, IScheduledOrderRepository, PurchaseRequest
from .scheduling import InFlightRegistry, ScheduledOrderService, ScheduledOrderWorker

__version__ = "0.1.0"

__all__ = [
    "ClassifiedError",
    "DomainError",
    "ErrorCategory",
    "ExecutionResult",
    "IMessenger",
    "IPurchaseEngine",
    "IScheduledOrderRepository",
    "InFlightRegistry",
    "InfrastructureError",
    "ItemSpec",
    "OrderCancelled",
    "OrderCompleted",
    "OrderFailed",
    "OrderNotFoundError",
    "OrderOutcome",
    "OrderStateError",
    "PinRecord",
    "PurchaseCancelledError",
    "PurchaseFault",
    "PurchaseRequest",
    "ScheduledOrder",
    "ScheduledOrderService",
    "ScheduledOrderStatus",
    "ScheduledOrderWorker",
    "ScheduledOrdersError",
    "SchedulerBootstrapResult",
    "SchedulerSettings",
    "__version__",
    "bootstrap_scheduler",
    "classify",
    "is_cancellation",
]
