"""Faults raised by purchase execution engines.

Engines raise a :class:`PurchaseFault` subclass so the delivery path can
classify it without string matching. Faults from engines that do not use
this hierarchy are still classified by their message text.
"""

from __future__ import annotations

from typing import ClassVar

from ..exceptions import ScheduledOrdersError
from .outcomes import ErrorCategory
from .results import ExecutionResult

CANCELLED_BY_USER = "cancelled by user"


class PurchaseFault(ScheduledOrdersError):
    """Base class for engine faults.

    ``category`` may be set per instance to override the class default;
    ``stage`` names the engine step that failed (``login``, ``payment``...).
    """

    default_category: ClassVar[ErrorCategory | None] = None

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category or self.default_category
        self.stage = stage


class SessionExpiredError(PurchaseFault):
    default_category = ErrorCategory.SESSION_EXPIRED


class InvalidBackupCodeError(PurchaseFault):
    default_category = ErrorCategory.INVALID_BACKUP_CODE


class StockNotAvailableError(PurchaseFault):
    default_category = ErrorCategory.STOCK_UNAVAILABLE


class NetworkError(PurchaseFault):
    default_category = ErrorCategory.NETWORK


class PaymentMethodNotFoundError(PurchaseFault):
    default_category = ErrorCategory.PAYMENT_METHOD_MISSING


class TwoFactorError(PurchaseFault):
    default_category = ErrorCategory.TWO_FACTOR


class PurchaseFailedError(PurchaseFault):
    default_category = ErrorCategory.PURCHASE_FAILED


class PurchaseCancelledError(PurchaseFault):
    """The engine observed a cancellation request and stopped.

    Always carries the partial result accumulated so far, which may hold
    zero pins.
    """

    def __init__(
        self,
        partial: ExecutionResult,
        message: str = f"Purchase {CANCELLED_BY_USER}",
        *,
        stage: str | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.partial = partial
