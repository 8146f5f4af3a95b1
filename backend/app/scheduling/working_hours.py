from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from app.scheduling.clock import parse_hhmm


WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class DayHoursArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_open: bool = Field(default=False, alias="isOpen")
    open: str = "09:00"
    close: str = "17:00"

    @field_validator("open")
    @classmethod
    def validate_open(cls, value: str) -> str:
        parse_hhmm(value)
        return value

    @field_validator("close")
    @classmethod
    def validate_close(cls, value: str) -> str:
        parse_hhmm(value, allow_end_of_day=True)
        return value

    @model_validator(mode="after")
    def validate_window(self) -> "DayHoursArgs":
        if self.is_open and parse_hhmm(self.open) >= parse_hhmm(self.close, allow_end_of_day=True):
            raise ValueError("Opening time must be before closing time.")
        return self


@dataclass(frozen=True)
class DayWindow:
    is_open: bool
    open_minute: int = 0
    close_minute: int = 0


CLOSED = DayWindow(is_open=False)


@dataclass(frozen=True)
class WorkingHours:
    """Weekly schedule keyed by ``date.weekday()`` (Monday=0). Missing days are closed."""

    days: dict[int, DayWindow]

    def for_date(self, on_date: date) -> DayWindow:
        return self.days.get(on_date.weekday(), CLOSED)


def parse_working_hours(raw: dict[str, Any] | None) -> WorkingHours:
    days: dict[int, DayWindow] = {}
    for key, value in (raw or {}).items():
        weekday = _weekday_index(key)
        try:
            args = value if isinstance(value, DayHoursArgs) else DayHoursArgs.model_validate(value)
        except ValidationError as exc:
            raise ValueError(f"Invalid hours for '{key}': {exc.errors()[0]['msg']}") from exc
        if not args.is_open:
            days[weekday] = CLOSED
            continue
        days[weekday] = DayWindow(
            is_open=True,
            open_minute=parse_hhmm(args.open),
            close_minute=parse_hhmm(args.close, allow_end_of_day=True),
        )
    return WorkingHours(days=days)


def resolve_day(working_hours: WorkingHours | dict[str, Any] | None, on_date: date) -> DayWindow:
    if not isinstance(working_hours, WorkingHours):
        working_hours = parse_working_hours(working_hours)
    return working_hours.for_date(on_date)


def _weekday_index(key: Any) -> int:
    text = str(key).strip().lower()
    if text.isdigit() and 0 <= int(text) <= 6:
        return int(text)
    if text in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(text)
    raise ValueError(f"Unknown weekday key '{key}'")
