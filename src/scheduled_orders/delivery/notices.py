"""Notice catalog — texts sent to a session over a job's lifetime."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoticeTemplate:
    """Immutable message template rendered with ``str.format``."""

    template_id: str
    body_template: str

    def render(self, **context: Any) -> str:
        try:
            return self.body_template.format(**context)
        except KeyError as e:
            logger.error("Missing variable %s in notice %s", e, self.template_id)
            raise


ORDER_STARTING = NoticeTemplate(
    "order_starting",
    "⏰ *SCHEDULED ORDER STARTING*\n\n"
    "🎮 Game: {game_name}\n"
    "💳 Card: {card_name}\n"
    "🔢 Quantity: {quantity}\n\n"
    "⏳ Processing your order...\n"
    "This may take several minutes.",
)

PURCHASE_PROGRESS = NoticeTemplate(
    "purchase_progress",
    "⏳ *PURCHASE PROGRESS*\n"
    "{bar}\n\n"
    "✅ *Completed:* {completed} / {total} cards\n"
    "📊 *Progress:* {percentage}%\n\n"
    "_Processing... Please wait_",
)

ORDER_COMPLETED = NoticeTemplate(
    "order_completed",
    "✅ *SCHEDULED ORDER COMPLETED*\n"
    "🆔 *Order ID:* #{order_id}\n\n"
    "📦 *Cards Processed*\n"
    "     {completed} / {total} cards\n\n"
    "{failed_line}"
    "✅ *Valid PINs:* {valid}",
)

FAILED_UNITS_LINE = NoticeTemplate(
    "failed_units_line",
    "⚠️ *{failed} card(s) marked FAILED*\n\n",
)

ORDER_CANCELLED = NoticeTemplate(
    "order_cancelled",
    "🛑 *SCHEDULED ORDER CANCELLED*\n"
    "🆔 *Order ID:* #{order_id}\n\n"
    "{counts}\n\n"
    "Your completed PINs will be sent below.",
)

CANCELLED_COUNTS = NoticeTemplate("cancelled_counts", "{valid} card(s) completed")

CANCELLED_COUNTS_WITH_FAILED = NoticeTemplate(
    "cancelled_counts_with_failed",
    "{valid} card(s) completed, {failed} card(s) failed",
)

ORDER_CANCELLED_EMPTY = NoticeTemplate(
    "order_cancelled_empty",
    "🛑 *SCHEDULED ORDER CANCELLED*\n"
    "No cards were processed.\n\n"
    "Use /start to create a new order.",
)

REMAINING_NOT_PROCESSED = NoticeTemplate(
    "remaining_not_processed",
    "ℹ️ {remaining} card(s) were not processed.\n\nUse /start to create a new order.",
)

ORDER_FAILED = NoticeTemplate(
    "order_failed",
    "❌ *SCHEDULED ORDER FAILED*\n\n{reason}\n\nPlease try creating a new order with /start",
)
