"""IMessenger — port for the session messaging channel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

#: Opaque handle to a sent message, as returned by :meth:`IMessenger.send`.
MessageRef = int


@dataclass(frozen=True)
class MessageOptions:
    """Rendering options passed along with a message.

    ``cancel_action`` attaches a single "cancel" button whose callback
    payload is the given string.
    """

    parse_mode: str | None = "Markdown"
    cancel_action: str | None = None


@runtime_checkable
class IMessenger(Protocol):
    """Framework-agnostic port for talking to a user session.

    Adapters must explicitly declare: ``class TelegramMessenger(IMessenger):``
    """

    async def send(
        self,
        session_id: str,
        text: str,
        options: MessageOptions | None = None,
    ) -> MessageRef:
        """Send a text message and return its handle."""
        ...

    async def edit(
        self,
        session_id: str,
        message_ref: MessageRef,
        text: str,
        options: MessageOptions | None = None,
    ) -> None:
        """Edit a previously sent message in place.

        Raises:
            MessageEditError: if the message can no longer be edited.
        """
        ...

    async def delete(self, session_id: str, message_ref: MessageRef) -> None:
        """Delete a message. Callers treat failures as non-fatal."""
        ...

    async def send_attachment(
        self,
        session_id: str,
        path: Path,
        *,
        filename: str,
        caption: str,
        options: MessageOptions | None = None,
    ) -> None:
        """Deliver the file at ``path`` as an attachment named ``filename``.

        Raises:
            AttachmentDeliveryError: if the attachment cannot be delivered.
        """
        ...
