"""Scheduling — when scheduled orders run and how many run at once.

* :class:`ScheduledOrderWorker` owns the poll loop and the dispatch guard.
* :class:`ScheduledOrderService` handles intake, cancellation requests and
  the execution of one record.
* :class:`InFlightRegistry` tracks running jobs by order and session.
"""

from .inflight import InFlightRegistry
from .service import ScheduledOrderService
from .worker import ScheduledOrderWorker

__all__ = ["InFlightRegistry", "ScheduledOrderService", "ScheduledOrderWorker"]
