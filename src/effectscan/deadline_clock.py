from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class DeadlineClock(Protocol):
    def consume(self, ticks: int = 1) -> None:
        """Consume logical progress units."""


class DeadlineClockExhausted(RuntimeError):
    """Raised by logical clocks when available ticks are exhausted."""


@dataclass
class GasMeter:
    """Deterministic logical clock driven by consumed ticks."""

    limit: int
    current: int = 0

    def __post_init__(self) -> None:
        if int(self.limit) <= 0:
            raise ValueError(f"invalid gas meter limit: {self.limit}")
        self.limit = int(self.limit)
        self.current = int(self.current)
        if self.current < 0:
            raise ValueError(f"invalid gas meter current: {self.current}")

    def consume(self, ticks: int = 1) -> None:
        ticks_value = int(ticks)
        if ticks_value <= 0:
            raise ValueError(f"invalid gas meter ticks: {ticks}")
        self.current += ticks_value
        if self.current >= self.limit:
            raise DeadlineClockExhausted(
                f"Gas exhausted: {self.current}/{self.limit}"
            )
