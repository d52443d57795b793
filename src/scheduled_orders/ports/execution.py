"""IPurchaseEngine — port for the external purchase execution engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..domain.order import ItemSpec
    from ..domain.results import ExecutionResult

    ProgressCallback = Callable[[int, int], Awaitable[None]]
    CancellationCheck = Callable[[], bool]


@dataclass(frozen=True)
class PurchaseRequest:
    """Everything the engine needs for one run.

    ``on_progress(completed, total)`` may be awaited any number of times;
    ``is_cancelled()`` is polled at the engine's own checkpoints.
    """

    owner_id: str
    item: ItemSpec
    quantity: int
    on_progress: ProgressCallback
    is_cancelled: CancellationCheck


@runtime_checkable
class IPurchaseEngine(Protocol):
    """Port for the component that actually buys the codes.

    Contract:

    * Returns a full :class:`ExecutionResult` on normal completion.
    * When ``request.is_cancelled()`` turns true, stops issuing new
      purchase attempts and raises ``PurchaseCancelledError`` carrying the
      partial result (possibly empty).
    * Any other exception is a hard failure; ``PurchaseFault`` subclasses
      let the caller classify it precisely.

    Usage::

        result = await engine.execute(request)
        ...
        engine.release(result.order_id)
    """

    async def execute(self, request: PurchaseRequest) -> ExecutionResult:
        """Run the purchase to completion (or cancellation)."""
        ...

    def release(self, order_id: int) -> None:
        """Drop any buffered result data held for ``order_id``."""
        ...
