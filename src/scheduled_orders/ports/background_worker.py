"""IBackgroundWorker — lifecycle port for the self-activating poll loop."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IBackgroundWorker(Protocol):
    """Lifecycle of a backlog-driven background loop.

    ``start`` / ``stop`` control polling only; work already dispatched keeps
    running until ``shutdown`` waits for it. ``ensure_active`` is the
    intake-side entry point and must be safe to call at any time.
    """

    @property
    def is_running(self) -> bool: ...

    async def start(self) -> None: ...

    async def stop(self) -> None:
        """Stop polling; does not wait for dispatched work."""
        ...

    async def shutdown(self) -> bool:
        """Stop polling and wait (bounded) for dispatched work to finish."""
        ...

    async def ensure_active(self) -> bool:
        """Start polling if there is any backlog; return whether running."""
        ...
