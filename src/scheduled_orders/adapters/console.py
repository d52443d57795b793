"""Console messenger for development debugging."""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

from ..ports.messaging import IMessenger, MessageOptions, MessageRef

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class ConsoleMessenger(IMessenger):
    """
    Development adapter that prints session messages to the console.
    """

    def __init__(self, output_to_stdout: bool = True):
        self.output_to_stdout = output_to_stdout
        self._refs = itertools.count(1)

    def _emit(self, header: str, session_id: str, body: str) -> None:
        output = "\n".join(
            [
                "═" * 50,
                header,
                f"Session: {session_id}",
                body,
                "═" * 50,
            ]
        )
        logger.info(output)
        if self.output_to_stdout:
            print(output)

    async def send(
        self,
        session_id: str,
        text: str,
        options: MessageOptions | None = None,
    ) -> MessageRef:
        ref = next(self._refs)
        body = text
        if options is not None and options.cancel_action:
            body += f"\n[Cancel → {options.cancel_action}]"
        self._emit(f"MESSAGE #{ref}", session_id, body)
        return ref

    async def edit(
        self,
        session_id: str,
        message_ref: MessageRef,
        text: str,
        options: MessageOptions | None = None,
    ) -> None:
        self._emit(f"EDIT #{message_ref}", session_id, text)

    async def delete(self, session_id: str, message_ref: MessageRef) -> None:
        self._emit(f"DELETE #{message_ref}", session_id, "")

    async def send_attachment(
        self,
        session_id: str,
        path: Path,
        *,
        filename: str,
        caption: str,
        options: MessageOptions | None = None,
    ) -> None:
        size = path.stat().st_size
        self._emit("ATTACHMENT", session_id, f"{filename} ({size} bytes)\n{caption}")
