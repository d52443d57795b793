"""ArtifactSender — writes code files to disk, uploads them, removes them."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from ..instrumentation import HookOperation, instrument
from .formatting import build_failed_report, build_pin_artifacts

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ..domain.results import PinRecord
    from ..ports.messaging import IMessenger
    from .formatting import Artifact

    PlainFormatter = Callable[[Sequence[PinRecord]], list[str]]

logger = logging.getLogger("scheduled_orders.delivery")


class ArtifactSender:
    """Delivers pin files for an order through an :class:`IMessenger`.

    Each file is written under ``artifact_dir`` with a unique name, handed
    to the messenger, and deleted afterwards whether or not the upload
    succeeded.
    """

    def __init__(self, messenger: IMessenger, artifact_dir: Path) -> None:
        self._messenger = messenger
        self._artifact_dir = Path(artifact_dir)

    async def send_pin_files(
        self,
        session_id: str,
        order_id: int | None,
        pins: Sequence[PinRecord],
        *,
        partial: bool = False,
        fallback: PlainFormatter | None = None,
    ) -> int:
        """Send both code files for ``order_id``.

        If no file could be uploaded and ``fallback`` is given, the pins are
        sent as plain messages instead; without a fallback the error
        propagates. Once one file has gone out the codes have reached the
        user, so a later upload failure is only logged.

        Returns:
            The number of files delivered (0 when nothing was valid or the
            fallback was used).
        """
        artifacts = build_pin_artifacts(order_id, pins, partial)
        if not artifacts:
            logger.warning("No valid PINs to send for order %s", order_id)
            return 0

        delivered: list[Artifact] = []

        async def _deliver() -> int:
            for artifact in artifacts:
                await self.send_artifact(session_id, artifact)
                delivered.append(artifact)
            return len(delivered)

        try:
            sent = int(
                await instrument(
                    HookOperation.ARTIFACTS_SEND,
                    _deliver,
                    {"order.id": order_id, "artifacts.partial": partial},
                )
            )
        except Exception:
            if delivered:
                logger.exception(
                    "Sent %d of %d PIN file(s) for order %s",
                    len(delivered),
                    len(artifacts),
                    order_id,
                )
                return len(delivered)
            logger.exception("Error sending PIN files for order %s", order_id)
            if fallback is None:
                raise
            messages = fallback(pins)
            for message in messages:
                await self._messenger.send(session_id, message)
            logger.info("Sent %d fallback text message(s) for order %s", len(messages), order_id)
            return 0

        logger.info("Sent %d PIN file(s) for order %s", sent, order_id)
        return sent

    async def send_failed_report(
        self, session_id: str, order_id: int | None, pins: Sequence[PinRecord]
    ) -> bool:
        """Best-effort report of failed units; never raises."""
        report = build_failed_report(order_id, pins)
        if report is None:
            return False
        try:
            await self.send_artifact(session_id, report)
        except Exception:  # noqa: BLE001
            logger.exception("Error sending failed cards report for order %s", order_id)
            return False
        return True

    async def send_artifact(self, session_id: str, artifact: Artifact) -> None:
        path = self._write(artifact)
        try:
            await self._messenger.send_attachment(
                session_id,
                path,
                filename=artifact.filename,
                caption=artifact.caption,
            )
        finally:
            self._remove(path)

    def _write(self, artifact: Artifact) -> Path:
        self._artifact_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=self._artifact_dir,
            prefix="artifact_",
            suffix=f"_{artifact.filename}",
            delete=False,
        ) as handle:
            handle.write(artifact.content)
        return Path(handle.name)

    def _remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to delete temporary file %s", path, exc_info=True)
