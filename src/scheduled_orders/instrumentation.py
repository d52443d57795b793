"""Instrumentation hooks around scheduler and delivery operations.

Every operation this package wraps is listed in :class:`HookOperation`.
Hooks receive the operation name, an attribute dict (always carrying
``correlation_id``; job-level operations also carry ``order.id`` and
``session.id``) and the continuation to await.

Hooks are held in a context-scoped :class:`HookRegistry`; job tasks copy
the context of the tick that created them, so hooks registered before the
worker starts see every job.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from contextvars import ContextVar
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .correlation import get_correlation_id

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    AttributePredicate = Callable[[str, dict[str, Any]], bool]

logger = logging.getLogger("scheduled_orders.instrumentation")


class HookOperation(str, Enum):
    SCHEDULER_TICK = "scheduler.tick"
    SCHEDULER_DISPATCH = "scheduler.dispatch"
    ORDER_EXECUTE = "order.execute"
    DELIVERY_COMPLETED = "delivery.completed"
    DELIVERY_CANCELLED = "delivery.cancelled"
    DELIVERY_FAILED = "delivery.failed"
    ARTIFACTS_SEND = "artifacts.send"


@runtime_checkable
class InstrumentationHook(Protocol):
    """Protocol for instrumentation hooks (tracing, metrics, etc.)."""

    async def __call__(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Wrap an operation with instrumentation."""
        ...


class HookRegistration:
    """One hook plus the operations (fnmatch patterns) it applies to."""

    def __init__(
        self,
        hook: InstrumentationHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        predicate: AttributePredicate | None = None,
    ) -> None:
        self.hook = hook
        self.priority = priority
        self.operations = operations or []
        self.predicate = predicate
        self.enabled = True

    def matches(self, operation: str, attributes: dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        if self.predicate is not None and not self.predicate(operation, attributes):
            return False
        return not self.operations or any(
            fnmatch.fnmatch(operation, pattern) for pattern in self.operations
        )


class HookRegistry:
    """Priority-ordered hooks; lower ``priority`` wraps outermost."""

    def __init__(self) -> None:
        self._registrations: list[HookRegistration] = []

    @property
    def has_hooks(self) -> bool:
        return bool(self._registrations)

    def register(
        self,
        hook: InstrumentationHook,
        *,
        priority: int = 0,
        operations: list[str] | None = None,
        predicate: AttributePredicate | None = None,
    ) -> HookRegistration:
        registration = HookRegistration(
            hook, priority=priority, operations=operations, predicate=predicate
        )
        self._registrations.append(registration)
        self._registrations.sort(key=lambda r: r.priority)
        return registration

    async def execute_all(
        self,
        operation: str,
        attributes: dict[str, Any],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run ``next_handler`` inside every matching hook."""
        matching = [r for r in self._registrations if r.matches(operation, attributes)]
        if not matching:
            return await next_handler()

        async def pipeline(index: int = 0) -> Any:
            if index >= len(matching):
                return await next_handler()
            return await matching[index].hook(
                operation,
                attributes,
                lambda: pipeline(index + 1),
            )

        return await pipeline()

    def clear(self) -> None:
        self._registrations.clear()


_hook_registry_var: ContextVar[HookRegistry | None] = ContextVar(
    "hook_registry", default=None
)


def get_hook_registry() -> HookRegistry:
    """Get the hook registry for the current context, creating it on first use."""
    registry = _hook_registry_var.get()
    if registry is None:
        registry = HookRegistry()
        _hook_registry_var.set(registry)
    return registry


def set_hook_registry(registry: HookRegistry) -> None:
    _hook_registry_var.set(registry)


def _attributes(attributes: dict[str, Any] | None) -> dict[str, Any]:
    merged = dict(attributes or {})
    merged.setdefault("correlation_id", get_correlation_id())
    return merged


async def instrument(
    operation: HookOperation,
    handler: Callable[[], Awaitable[Any]],
    attributes: dict[str, Any] | None = None,
) -> Any:
    """Await ``handler`` wrapped by the hooks registered for ``operation``."""
    return await get_hook_registry().execute_all(
        operation.value, _attributes(attributes), handler
    )


def _log_hook_failure(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Instrumentation hook failed: %s", exc, exc_info=exc)


def notify(operation: HookOperation, attributes: dict[str, Any] | None = None) -> None:
    """Report a synchronous event to hooks without waiting for them.

    No-op when nothing is registered or no event loop is running.
    """
    registry = get_hook_registry()
    if not registry.has_hooks:
        return
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return

    async def _no_op() -> None:
        return None

    task = loop.create_task(registry.execute_all(operation.value, _attributes(attributes), _no_op))
    task.add_done_callback(_log_hook_failure)
