"""bootstrap_scheduler — one-call wiring for scheduled-order execution."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .config import SchedulerSettings
from .delivery.artifacts import ArtifactSender
from .delivery.coordinator import DeliveryCoordinator
from .delivery.progress import ProgressReporter
from .delivery.tracking import SessionTracker
from .scheduling.inflight import InFlightRegistry
from .scheduling.service import ScheduledOrderService
from .scheduling.worker import ScheduledOrderWorker

if TYPE_CHECKING:
    from .ports.execution import IPurchaseEngine
    from .ports.messaging import IMessenger
    from .ports.persistence import IScheduledOrderRepository

logger = logging.getLogger("scheduled_orders.scheduling")


class SchedulerBootstrapResult:
    """Container returned by :func:`bootstrap_scheduler` with all wired components.

    Attributes:
        service: The :class:`ScheduledOrderService` (intake, cancellation).
        worker: The :class:`ScheduledOrderWorker`; not started yet.
        coordinator: The :class:`DeliveryCoordinator`.
        tracker: The shared :class:`SessionTracker`.
    """

    def __init__(
        self,
        service: ScheduledOrderService,
        worker: ScheduledOrderWorker,
        coordinator: DeliveryCoordinator,
        tracker: SessionTracker,
    ) -> None:
        self.service = service
        self.worker = worker
        self.coordinator = coordinator
        self.tracker = tracker


def bootstrap_scheduler(
    *,
    repository: IScheduledOrderRepository,
    engine: IPurchaseEngine,
    messenger: IMessenger,
    settings: SchedulerSettings | None = None,
) -> SchedulerBootstrapResult:
    """Wire up scheduled-order execution in one call.

    1. Creates the session tracker shared by execution and delivery.
    2. Builds the delivery path (progress, artifacts, coordinator).
    3. Creates the service and the worker, and binds the worker's
       ``ensure_active`` as the service's activator so scheduling a record
       wakes the loop.

    The caller must ``await result.worker.ensure_active()`` on process start
    and ``await result.worker.shutdown()`` on exit.

    Example
    -------
    ::

        result = bootstrap_scheduler(
            repository=repo,
            engine=engine,
            messenger=messenger,
            settings=SchedulerSettings(poll_interval=30),
        )
        await result.worker.ensure_active()
    """
    settings = settings or SchedulerSettings()

    # 1. Shared per-session state
    tracker = SessionTracker()

    # 2. Delivery
    progress = ProgressReporter(
        messenger,
        tracker,
        bar_width=settings.progress_bar_width,
        cancel_action_prefix=settings.cancel_action_prefix,
    )
    artifacts = ArtifactSender(messenger, settings.artifact_dir)
    coordinator = DeliveryCoordinator(
        repository=repository,
        messenger=messenger,
        tracker=tracker,
        progress=progress,
        artifacts=artifacts,
        release_result=engine.release,
        send_failed_report=settings.send_failed_report,
    )

    # 3. Service + worker (reactive: activate on intake + poll fallback)
    service = ScheduledOrderService(
        repository=repository,
        engine=engine,
        coordinator=coordinator,
        tracker=tracker,
    )
    worker = ScheduledOrderWorker(
        service,
        repository,
        inflight=InFlightRegistry(),
        poll_interval=settings.poll_interval,
        exclusive_sessions=settings.exclusive_sessions,
        shutdown_timeout=settings.shutdown_timeout,
    )
    service.set_activator(worker.ensure_active)

    logger.info(
        "Scheduler bootstrap complete: poll_interval=%.1fs, exclusive_sessions=%s",
        settings.poll_interval,
        settings.exclusive_sessions,
    )

    return SchedulerBootstrapResult(
        service=service,
        worker=worker,
        coordinator=coordinator,
        tracker=tracker,
    )
