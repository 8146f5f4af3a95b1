from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.bookings.lifecycle import BookingLifecycleManager
from app.db.models import Booking
from app.db.store import BookingStore
from app.scheduling.clock import parse_hhmm


class CreateBookingArgs(BaseModel):
    business_id: int
    service_id: int
    customer_id: int
    date: date_type
    start_time: str
    staff_id: int | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        parse_hhmm(value)
        return value.strip()

    @property
    def start_minute(self) -> int:
        return parse_hhmm(self.start_time)


def parse_create_booking_args(raw_args: dict[str, Any]) -> CreateBookingArgs:
    return CreateBookingArgs.model_validate(raw_args)


def create_booking(
    store: BookingStore,
    args: CreateBookingArgs,
    now: datetime | None = None,
) -> Booking:
    return BookingLifecycleManager(store).create(
        business_id=args.business_id,
        service_id=args.service_id,
        customer_id=args.customer_id,
        on_date=args.date,
        start_minute=args.start_minute,
        notes=args.notes,
        staff_id=args.staff_id,
        now=now,
    )
