"""Shared fixtures: in-memory adapters wired through bootstrap."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from factories import FakePurchaseEngine

from scheduled_orders import SchedulerSettings, bootstrap_scheduler
from scheduled_orders.adapters.memory import (
    InMemoryMessenger,
    InMemoryScheduledOrderRepository,
)

if TYPE_CHECKING:
    from pathlib import Path

    from scheduled_orders import SchedulerBootstrapResult


@pytest.fixture
def repository() -> InMemoryScheduledOrderRepository:
    return InMemoryScheduledOrderRepository()


@pytest.fixture
def messenger() -> InMemoryMessenger:
    return InMemoryMessenger()


@pytest.fixture
def engine() -> FakePurchaseEngine:
    return FakePurchaseEngine()


@pytest.fixture
def settings(tmp_path: Path) -> SchedulerSettings:
    return SchedulerSettings(poll_interval=0.05, artifact_dir=tmp_path / "artifacts")


@pytest.fixture
def stack(
    repository: InMemoryScheduledOrderRepository,
    messenger: InMemoryMessenger,
    engine: FakePurchaseEngine,
    settings: SchedulerSettings,
) -> SchedulerBootstrapResult:
    return bootstrap_scheduler(
        repository=repository,
        engine=engine,
        messenger=messenger,
        settings=settings,
    )
