"""Error classifier — maps engine faults to user-facing messages.

Classification order:

1. An explicit ``category`` attribute on the fault (``PurchaseFault``
   subclasses set one), when it names a known category.
2. Case-insensitive keyword matching on the fault message, first match
   wins, in this priority order: session expiry, backup codes, stock,
   network, payment method, two-factor.
3. A generic fallback carrying the original message.

Cancellations are not errors. :func:`classify` refuses them; callers must
branch on :func:`is_cancellation` first.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .domain.faults import CANCELLED_BY_USER, PurchaseCancelledError
from .domain.outcomes import ClassifiedError, ErrorCategory

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("scheduled_orders.classifier")

USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.SESSION_EXPIRED: "🔐 *Session Expired*\nUpdate credentials in /settings",
    ErrorCategory.INVALID_BACKUP_CODE: "🔐 *Backup Code Error*\nAdd new codes in /settings",
    ErrorCategory.STOCK_UNAVAILABLE: (
        "📦 *Out of Stock*\nTry again later or choose different card."
    ),
    ErrorCategory.NETWORK: "🌐 *Network Error*\nCheck connection and retry.",
    ErrorCategory.PAYMENT_METHOD_MISSING: (
        "💳 *Payment Method Error*\nCheck storefront account settings."
    ),
    ErrorCategory.TWO_FACTOR: "🔐 *2FA Error*\nRetry or update backup codes in /settings",
    ErrorCategory.PURCHASE_FAILED: "❌ *Purchase Failed*\n{detail}\nRetry or contact support.",
    ErrorCategory.GENERIC: "❌ *Error*\n{detail}\nUse /start to restart.",
}

# Categories whose message embeds the fault text.
_DETAILED = frozenset({ErrorCategory.PURCHASE_FAILED, ErrorCategory.GENERIC})


def _has(*needles: str) -> Callable[[str], bool]:
    return lambda text: any(needle in text for needle in needles)


def _session_expired(text: str) -> bool:
    return "session" in text and "expired" in text


def _backup_code(text: str) -> bool:
    return "backup" in text and ("invalid" in text or "used" in text)


KEYWORD_RULES: tuple[tuple[ErrorCategory, Callable[[str], bool]], ...] = (
    (ErrorCategory.SESSION_EXPIRED, _session_expired),
    (ErrorCategory.INVALID_BACKUP_CODE, _backup_code),
    (ErrorCategory.STOCK_UNAVAILABLE, _has("stock", "not available", "unavailable")),
    (ErrorCategory.NETWORK, _has("network", "timeout", "timed out", "econnrefused")),
    (ErrorCategory.PAYMENT_METHOD_MISSING, _has("payment method")),
    (ErrorCategory.TWO_FACTOR, _has("2fa", "two-factor")),
)


def fault_message(fault: BaseException) -> str:
    return str(fault) or type(fault).__name__


def is_cancellation(fault: BaseException) -> bool:
    """Whether ``fault`` reports a user cancellation rather than an error."""
    if isinstance(fault, PurchaseCancelledError):
        return True
    return CANCELLED_BY_USER in str(fault).lower()


def _explicit_category(fault: BaseException) -> ErrorCategory | None:
    raw = getattr(fault, "category", None)
    if raw is None:
        return None
    if isinstance(raw, ErrorCategory):
        return raw
    try:
        return ErrorCategory(str(raw).lower())
    except ValueError:
        logger.debug("Ignoring unknown fault category %r", raw)
        return None


def match_keywords(message: str) -> ErrorCategory | None:
    """Return the first category whose keywords appear in ``message``."""
    text = message.lower()
    for category, rule in KEYWORD_RULES:
        if rule(text):
            return category
    return None


def classify(fault: BaseException) -> ClassifiedError:
    """Map ``fault`` to a :class:`ClassifiedError`.

    Raises:
        ValueError: if ``fault`` is a cancellation.
    """
    if is_cancellation(fault):
        raise ValueError("Cancellations are not classified as errors")

    detail = fault_message(fault)
    category = _explicit_category(fault) or match_keywords(detail) or ErrorCategory.GENERIC
    template = USER_MESSAGES[category]
    if category in _DETAILED:
        return ClassifiedError(category, template.format(detail=detail), detail)
    return ClassifiedError(category, template, detail)
