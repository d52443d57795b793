"""Scheduler configuration."""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


def _default_artifact_dir() -> Path:
    return Path(tempfile.gettempdir()) / "scheduled_orders_artifacts"


class SchedulerSettings(BaseModel):
    """Configuration for the scheduled-order worker and delivery path."""

    model_config = ConfigDict(frozen=True)

    # Seconds between backlog polls.
    poll_interval: float = Field(default=60.0, gt=0)

    # Cells in the rendered progress bar.
    progress_bar_width: int = Field(default=15, ge=1)

    # Where transient attachment files are written before upload.
    artifact_dir: Path = Field(default_factory=_default_artifact_dir)

    # Upper bound on waiting for in-flight jobs during shutdown.
    shutdown_timeout: float = Field(default=5.0, ge=0)

    # Refuse to dispatch a record while another job for the same session runs.
    exclusive_sessions: bool = True

    # Send a report listing failed units after the code files.
    send_failed_report: bool = True

    # Callback payload prefix for the "cancel order" button.
    cancel_action_prefix: str = "scheduled_cancel_"
