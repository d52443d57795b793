"""Delivery — progress messages, notices, artifacts and outcome reconciliation."""

from __future__ import annotations

from .artifacts import ArtifactSender
from .coordinator import CANCELLED_REASON, DeliveryCoordinator
from .formatting import (
    Artifact,
    ArtifactVariant,
    artifact_caption,
    artifact_filename,
    build_failed_report,
    build_pin_artifacts,
    format_pins_plain,
    render_codes_only,
    render_with_serial,
)
from .progress import (
    ProgressReporter,
    progress_percentage,
    render_progress_bar,
    render_progress_text,
)
from .tracking import SessionState, SessionTracker

__all__ = [
    "CANCELLED_REASON",
    "Artifact",
    "ArtifactSender",
    "ArtifactVariant",
    "DeliveryCoordinator",
    "ProgressReporter",
    "SessionState",
    "SessionTracker",
    "artifact_caption",
    "artifact_filename",
    "build_failed_report",
    "build_pin_artifacts",
    "format_pins_plain",
    "progress_percentage",
    "render_codes_only",
    "render_progress_bar",
    "render_progress_text",
    "render_with_serial",
]
