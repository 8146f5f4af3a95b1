from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, replace

from app.config import SLOT_GRANULARITY_MINUTES
from app.scheduling.clock import format_minutes


@dataclass(frozen=True)
class Slot:
    start_minute: int
    end_minute: int
    available: bool = True

    def mark(self, available: bool) -> "Slot":
        return replace(self, available=available)

    def to_dict(self) -> dict[str, str]:
        return {
            "start": format_minutes(self.start_minute),
            "end": format_minutes(self.end_minute),
        }


@dataclass(frozen=True)
class SlotGenerator:
    """Candidate slots for one service inside one operating window.

    Iterating starts over from ``open_minute`` every time, so the same
    generator can be consumed more than once.
    """

    open_minute: int
    close_minute: int
    duration: int
    granularity: int = SLOT_GRANULARITY_MINUTES

    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise ValueError("Service duration must be positive.")
        if self.granularity <= 0:
            raise ValueError("Slot granularity must be positive.")

    def __iter__(self) -> Iterator[Slot]:
        return iter_candidate_slots(
            open_minute=self.open_minute,
            close_minute=self.close_minute,
            duration=self.duration,
            granularity=self.granularity,
        )


def iter_candidate_slots(
    open_minute: int,
    close_minute: int,
    duration: int,
    granularity: int = SLOT_GRANULARITY_MINUTES,
) -> Iterator[Slot]:
    cursor = open_minute
    while cursor < close_minute:
        end = cursor + duration
        if end <= close_minute:
            yield Slot(start_minute=cursor, end_minute=end)
        cursor += granularity


def generate_slots(
    open_minute: int,
    close_minute: int,
    duration: int,
    granularity: int = SLOT_GRANULARITY_MINUTES,
) -> list[Slot]:
    return list(SlotGenerator(open_minute, close_minute, duration, granularity))
