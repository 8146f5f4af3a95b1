from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.bookings.lifecycle import BookingLifecycleManager, BookingStatus, CancellationActor
from app.db.models import Booking
from app.db.store import BookingStore


class CancelBookingArgs(BaseModel):
    requested_by: CancellationActor = CancellationActor.CUSTOMER
    reason: str | None = Field(default=None, max_length=200)


class UpdateBookingStatusArgs(BaseModel):
    status: BookingStatus
    requested_by: CancellationActor = CancellationActor.BUSINESS
    business_note: str | None = Field(default=None, max_length=500)


def parse_cancel_booking_args(raw_args: dict[str, Any]) -> CancelBookingArgs:
    return CancelBookingArgs.model_validate(raw_args)


def parse_update_booking_status_args(raw_args: dict[str, Any]) -> UpdateBookingStatusArgs:
    return UpdateBookingStatusArgs.model_validate(raw_args)


def cancel_booking(
    store: BookingStore,
    booking_id: int,
    args: CancelBookingArgs,
    now: datetime | None = None,
) -> Booking:
    return BookingLifecycleManager(store).cancel(
        booking_id=booking_id,
        requested_by=args.requested_by.value,
        reason=args.reason,
        now=now,
    )


def update_booking_status(
    store: BookingStore,
    booking_id: int,
    args: UpdateBookingStatusArgs,
    now: datetime | None = None,
) -> Booking:
    return BookingLifecycleManager(store).update_status(
        booking_id=booking_id,
        new_status=args.status.value,
        requested_by=args.requested_by.value,
        business_note=args.business_note,
        now=now,
    )
