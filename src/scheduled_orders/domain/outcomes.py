"""Tagged outcomes of one scheduled-order run."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .results import ExecutionResult


class ErrorCategory(str, Enum):
    """User-facing fault categories."""

    SESSION_EXPIRED = "session_expired"
    INVALID_BACKUP_CODE = "invalid_backup_code"
    STOCK_UNAVAILABLE = "stock_unavailable"
    NETWORK = "network"
    PAYMENT_METHOD_MISSING = "payment_method_missing"
    TWO_FACTOR = "two_factor"
    PURCHASE_FAILED = "purchase_failed"
    GENERIC = "generic"


@dataclass(frozen=True)
class ClassifiedError:
    """A fault mapped to its category and the message shown to the user."""

    category: ErrorCategory
    message: str
    detail: str | None = None


@dataclass(frozen=True)
class OrderCompleted:
    result: ExecutionResult


@dataclass(frozen=True)
class OrderCancelled:
    """Cooperative cancellation; ``partial`` holds whatever was acquired."""

    partial: ExecutionResult
    stage: str | None = None


@dataclass(frozen=True)
class OrderFailed:
    error: Exception
    reason: ClassifiedError


OrderOutcome = Union[OrderCompleted, OrderCancelled, OrderFailed]
