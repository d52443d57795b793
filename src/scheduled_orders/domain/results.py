"""ExecutionResult — what the purchase engine hands back for one run."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

#: Sentinel code marking a unit that was attempted but not acquired.
FAILED_CODE = "FAILED"


class PinRecord(BaseModel):
    """One purchased (or failed) redeemable code."""

    model_config = ConfigDict(frozen=True)

    code: str
    serial_number: str | None = None
    stage: str | None = None
    error: str | None = None
    transaction_id: str | None = None

    @property
    def is_failed(self) -> bool:
        return self.code == FAILED_CODE

    @classmethod
    def failed(
        cls,
        *,
        stage: str | None = None,
        error: str | None = None,
        transaction_id: str | None = None,
    ) -> PinRecord:
        """Build a record for a unit that could not be acquired."""
        return cls(
            code=FAILED_CODE,
            serial_number=FAILED_CODE,
            stage=stage,
            error=error,
            transaction_id=transaction_id,
        )


def valid_pins(pins: Iterable[PinRecord]) -> list[PinRecord]:
    """Return the pins that carry a real code, preserving order."""
    return [pin for pin in pins if pin is not None and not pin.is_failed]


def failed_pins(pins: Iterable[PinRecord]) -> list[PinRecord]:
    return [pin for pin in pins if pin is not None and pin.is_failed]


class ExecutionResult(BaseModel):
    """Transient result of one execution engine run.

    ``completed_purchases`` counts every unit the engine accounted for,
    successful or failed; ``cards_count`` is the number requested. Both are
    cumulative counts of the order the engine created for this run.
    """

    model_config = ConfigDict(frozen=True)

    order_id: int | None = None
    cards_count: int = Field(default=0, ge=0)
    completed_purchases: int = Field(default=0, ge=0)
    pins: tuple[PinRecord, ...] = ()

    @classmethod
    def empty(cls, cards_count: int = 0, order_id: int | None = None) -> ExecutionResult:
        """A result with nothing acquired (e.g. cancelled before the first unit)."""
        return cls(order_id=order_id, cards_count=cards_count)

    @property
    def valid_pins(self) -> list[PinRecord]:
        return valid_pins(self.pins)

    @property
    def failed_pins(self) -> list[PinRecord]:
        return failed_pins(self.pins)

    @property
    def valid_count(self) -> int:
        return len(self.valid_pins)

    @property
    def failed_count(self) -> int:
        return len(self.failed_pins)

    @property
    def remaining(self) -> int:
        """Units requested but never attempted."""
        return max(self.cards_count - self.completed_purchases, 0)
