"""In-memory messenger for test assertions."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ...exceptions import AttachmentDeliveryError, MessageEditError, MessagingError
from ...ports.messaging import IMessenger, MessageOptions, MessageRef

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class SentMessage:
    """Record of a text message for test assertions.

    ``history`` holds every text the message has shown, oldest first.
    """

    session_id: str
    ref: MessageRef
    text: str
    options: MessageOptions | None
    history: list[str] = field(default_factory=list)
    deleted: bool = False


@dataclass
class SentAttachment:
    """Record of a delivered attachment. ``content`` is read at send time."""

    session_id: str
    filename: str
    caption: str
    content: str
    path: Path


class InMemoryMessenger(IMessenger):
    """
    Test double (Fake) that keeps every message in memory for assertions.

    Failure injection: set ``fail_edits``, ``fail_sends`` or
    ``fail_attachments`` to make the matching call raise.
    """

    def __init__(self) -> None:
        self.messages: list[SentMessage] = []
        self.attachments: list[SentAttachment] = []
        self.fail_edits = False
        self.fail_sends = False
        self.fail_attachments = False
        self._refs = itertools.count(1)

    def _find(self, session_id: str, message_ref: MessageRef) -> SentMessage | None:
        for message in self.messages:
            if message.session_id == session_id and message.ref == message_ref:
                return message
        return None

    async def send(
        self,
        session_id: str,
        text: str,
        options: MessageOptions | None = None,
    ) -> MessageRef:
        if self.fail_sends:
            raise MessagingError(f"Send to {session_id} failed")
        ref = next(self._refs)
        self.messages.append(SentMessage(session_id, ref, text, options, history=[text]))
        return ref

    async def edit(
        self,
        session_id: str,
        message_ref: MessageRef,
        text: str,
        options: MessageOptions | None = None,
    ) -> None:
        message = self._find(session_id, message_ref)
        if self.fail_edits:
            raise MessageEditError(session_id, message_ref, "editing disabled")
        if message is None or message.deleted:
            raise MessageEditError(session_id, message_ref, "message not found")
        message.text = text
        message.options = options
        message.history.append(text)

    async def delete(self, session_id: str, message_ref: MessageRef) -> None:
        message = self._find(session_id, message_ref)
        if message is None or message.deleted:
            raise MessagingError(f"Message {message_ref} not found in {session_id}")
        message.deleted = True

    async def send_attachment(
        self,
        session_id: str,
        path: Path,
        *,
        filename: str,
        caption: str,
        options: MessageOptions | None = None,
    ) -> None:
        if self.fail_attachments:
            raise AttachmentDeliveryError(session_id, filename, "attachments disabled")
        content = path.read_text(encoding="utf-8")
        self.attachments.append(SentAttachment(session_id, filename, caption, content, path))

    # --- Test helpers ---

    def live_messages(self, session_id: str) -> list[SentMessage]:
        """Messages on ``session_id`` that have not been deleted."""
        return [m for m in self.messages if m.session_id == session_id and not m.deleted]

    def texts(self, session_id: str) -> list[str]:
        """Current text of every message ever sent to ``session_id``."""
        return [m.text for m in self.messages if m.session_id == session_id]

    def attachment_names(self, session_id: str) -> list[str]:
        return [a.filename for a in self.attachments if a.session_id == session_id]

    def assert_sent_containing(self, session_id: str, fragment: str, count: int = 1) -> None:
        """Helper for test assertions."""
        matches = [t for t in self.texts(session_id) if fragment in t]
        if len(matches) != count:
            raise AssertionError(
                f"Expected {count} message(s) containing {fragment!r} in {session_id}, "
                f"but found {len(matches)}."
            )

    def clear(self) -> None:
        """Clear all recorded messages and attachments."""
        self.messages.clear()
        self.attachments.clear()
