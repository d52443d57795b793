"""Artifact formatting — turns pin lists into delivery-ready files.

Pure functions only; writing and sending files lives in
:mod:`scheduled_orders.delivery.artifacts`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..domain.results import failed_pins, valid_pins

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..domain.results import PinRecord

MISSING_SERIAL = "N/A"


class ArtifactVariant(str, Enum):
    """File layouts delivered for every order."""

    WITH_SERIAL = "with_serial"
    CODES_ONLY = "only"


@dataclass(frozen=True)
class Artifact:
    """Immutable file ready for delivery."""

    filename: str
    content: str
    caption: str
    mimetype: str = "text/plain"


def render_with_serial(pins: Sequence[PinRecord]) -> str:
    """Code and serial on consecutive lines, one blank line between cards."""
    blocks = [f"{pin.code}\n{pin.serial_number or MISSING_SERIAL}\n" for pin in valid_pins(pins)]
    return "\n".join(blocks)


def render_codes_only(pins: Sequence[PinRecord]) -> str:
    """One code per line."""
    codes = [pin.code for pin in valid_pins(pins)]
    if not codes:
        return ""
    return "\n".join(codes) + "\n"


def artifact_filename(order_id: int | None, variant: ArtifactVariant, partial: bool = False) -> str:
    partial_suffix = "_Partial" if partial else ""
    layout = "Pins_with_Serial" if variant is ArtifactVariant.WITH_SERIAL else "Pins_Only"
    return f"Order_{order_id}{partial_suffix}_{layout}.txt"


def artifact_caption(order_id: int | None, variant: ArtifactVariant, partial: bool = False) -> str:
    partial_label = " (Partial)" if partial else ""
    title = "PINs + Serials" if variant is ArtifactVariant.WITH_SERIAL else "PINs Only"
    return f"📄 *{title}*\nOrder #{order_id}{partial_label}"


_RENDERERS = {
    ArtifactVariant.WITH_SERIAL: render_with_serial,
    ArtifactVariant.CODES_ONLY: render_codes_only,
}


def build_pin_artifacts(
    order_id: int | None,
    pins: Sequence[PinRecord],
    partial: bool = False,
) -> list[Artifact]:
    """Build both code files for an order; empty when no pin is valid."""
    if not valid_pins(pins):
        return []
    return [
        Artifact(
            filename=artifact_filename(order_id, variant, partial),
            content=render(pins),
            caption=artifact_caption(order_id, variant, partial),
        )
        for variant, render in _RENDERERS.items()
    ]


def build_failed_report(order_id: int | None, pins: Sequence[PinRecord]) -> Artifact | None:
    """List every failed unit with its stage, error and transaction ID."""
    failed = failed_pins(pins)
    if not failed:
        return None

    lines = [
        f"Failed Cards Report - Order #{order_id}",
        "=" * 45,
        "",
        f"Total Failed: {len(failed)}",
        "",
    ]
    for index, pin in enumerate(failed, start=1):
        lines.append(f"Card {index}:")
        lines.append(f"  Stage: {pin.stage or 'Unknown'}")
        lines.append(f"  Error: {pin.error or 'Unknown error'}")
        if pin.transaction_id:
            lines.append(f"  Transaction ID: {pin.transaction_id}")
        lines.append("")

    return Artifact(
        filename=f"order_{order_id}_failed_cards.txt",
        content="\n".join(lines) + "\n",
        caption=f"❌ *Failed Cards Report*\nOrder #{order_id}: {len(failed)} card(s) failed",
    )


def format_pins_plain(pins: Sequence[PinRecord]) -> list[str]:
    """Plain-text fallback: one back-ticked code per line in a single message."""
    lines = ["FAILED" if pin.is_failed else f"`{pin.code}`" for pin in pins]
    return ["\n".join(lines) + "\n"] if lines else []
