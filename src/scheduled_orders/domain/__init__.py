"""Domain model — scheduled orders, execution results, faults and outcomes."""

from __future__ import annotations

from .faults import (
    CANCELLED_BY_USER,
    InvalidBackupCodeError,
    NetworkError,
    PaymentMethodNotFoundError,
    PurchaseCancelledError,
    PurchaseFailedError,
    PurchaseFault,
    SessionExpiredError,
    StockNotAvailableError,
    TwoFactorError,
)
from .order import ItemSpec, ScheduledOrder, ScheduledOrderStatus, ensure_utc
from .outcomes import (
    ClassifiedError,
    ErrorCategory,
    OrderCancelled,
    OrderCompleted,
    OrderFailed,
    OrderOutcome,
)
from .results import FAILED_CODE, ExecutionResult, PinRecord, failed_pins, valid_pins

__all__ = [
    # Order
    "ItemSpec",
    "ScheduledOrder",
    "ScheduledOrderStatus",
    "ensure_utc",
    # Results
    "FAILED_CODE",
    "ExecutionResult",
    "PinRecord",
    "failed_pins",
    "valid_pins",
    # Outcomes
    "ClassifiedError",
    "ErrorCategory",
    "OrderCancelled",
    "OrderCompleted",
    "OrderFailed",
    "OrderOutcome",
    # Faults
    "CANCELLED_BY_USER",
    "InvalidBackupCodeError",
    "NetworkError",
    "PaymentMethodNotFoundError",
    "PurchaseCancelledError",
    "PurchaseFailedError",
    "PurchaseFault",
    "SessionExpiredError",
    "StockNotAvailableError",
    "TwoFactorError",
]
