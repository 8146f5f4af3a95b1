from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from app.config import DEFAULT_CANCELLATION_HOURS, DEFAULT_TIMEZONE
from app.db.models import Booking, Business
from app.db.store import BookingStore
from app.errors import (
    ConflictError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    OutOfHoursError,
    PastDateError,
    PolicyViolationError,
)
from app.scheduling.availability import load_business_and_service
from app.scheduling.clock import business_today, format_minutes, hours_until_start, utc_now
from app.scheduling.conflicts import check_conflict, is_occupying, resolve_conflict_scope
from app.scheduling.working_hours import resolve_day


logger = logging.getLogger("bookings.lifecycle")


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class CancellationActor(str, Enum):
    CUSTOMER = "customer"
    BUSINESS = "business"
    SYSTEM = "system"


TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
)
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
}


def can_transition(current: str, new: str) -> bool:
    try:
        current_status = BookingStatus(current)
        new_status = BookingStatus(new)
    except ValueError:
        return False
    return new_status in ALLOWED_TRANSITIONS.get(current_status, frozenset())


class BookingLifecycleManager:
    """Creates bookings and moves them through their status machine.

    All writes go through the injected store. Creation holds the store's
    day lock across the conflict check and the insert, so two callers racing
    for overlapping intervals on the same business day cannot both succeed.
    """

    def __init__(self, store: BookingStore) -> None:
        self._store = store

    def create(
        self,
        business_id: int,
        service_id: int,
        customer_id: int,
        on_date: date,
        start_minute: int,
        notes: str | None = None,
        staff_id: int | None = None,
        now: datetime | None = None,
    ) -> Booking:
        candidate_business = self._store.get_business(business_id)
        timezone_name = candidate_business.timezone if candidate_business else DEFAULT_TIMEZONE
        today = business_today(timezone_name, now)
        if on_date < today:
            raise PastDateError("Cannot book a date in the past.")

        business, service = load_business_and_service(self._store, business_id, service_id)
        policies = business.policies_json or {}
        _check_advance_window(policies, on_date=on_date, today=today)

        end_minute = start_minute + service.duration_minutes
        day = resolve_day(business.working_hours_json, on_date)
        if not day.is_open:
            raise OutOfHoursError("Business is closed on this day.")
        if start_minute < day.open_minute or end_minute > day.close_minute:
            raise OutOfHoursError(
                "Booking time is outside working hours "
                f"({format_minutes(day.open_minute)} - {format_minutes(day.close_minute)})."
            )

        scope = resolve_conflict_scope(policies)
        with self._store.day_lock(business.id, on_date):
            occupying = [
                b for b in self._store.find_by_business_and_date(business.id, on_date) if is_occupying(b)
            ]
            check = check_conflict(
                start_minute,
                end_minute,
                occupying,
                scope=scope,
                staff_id=staff_id,
            )
            if check.conflict:
                blocking = check.blocking
                _log_event(
                    "booking_conflict",
                    business_id=business.id,
                    date=on_date.isoformat(),
                    start=format_minutes(start_minute),
                    blocking_booking_id=blocking.id,
                )
                raise ConflictError(
                    "Time slot already booked "
                    f"({format_minutes(blocking.start_minute)} - {format_minutes(blocking.end_minute)}).",
                    blocking=blocking,
                )
            _check_daily_cap(policies, occupying_count=len(occupying))

            booking = self._store.insert(
                Booking(
                    business_id=business.id,
                    service_id=service.id,
                    customer_id=customer_id,
                    staff_id=staff_id,
                    date=on_date,
                    start_minute=start_minute,
                    end_minute=end_minute,
                    status=BookingStatus.PENDING.value,
                    total_price=service.price,
                    currency=service.currency,
                    customer_notes=notes,
                )
            )

        _log_event(
            "booking_created",
            booking_id=booking.id,
            business_id=business.id,
            service_id=service.id,
            date=on_date.isoformat(),
            start=format_minutes(start_minute),
            end=format_minutes(end_minute),
        )
        return booking

    def cancel(
        self,
        booking_id: int,
        requested_by: str,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        actor = CancellationActor(requested_by)
        booking = self._require_booking(booking_id)
        if BookingStatus(booking.status) in TERMINAL_STATUSES:
            raise InvalidStateError(f"Booking is already {booking.status}.")

        business = self._store.get_business(booking.business_id)
        if business is None:
            raise NotFoundError("Business not found.")
        if not business.allow_cancellation:
            raise PolicyViolationError("This business does not allow cancellations.")

        window = _cancellation_window(business)
        remaining = hours_until_start(booking.date, booking.start_minute, business.timezone, now)
        if remaining < window:
            raise PolicyViolationError(
                f"Bookings can only be cancelled at least {window} hours in advance."
            )

        updated = self._store.update_status(
            booking.id,
            {
                "status": BookingStatus.CANCELLED.value,
                "cancelled_at": utc_now(now),
                "cancelled_by": actor.value,
                "cancellation_reason": reason,
            },
            expected_status=booking.status,
        )
        _log_event(
            "booking_cancelled",
            booking_id=updated.id,
            business_id=updated.business_id,
            cancelled_by=actor.value,
            hours_until_start=round(remaining, 2),
        )
        return updated

    def update_status(
        self,
        booking_id: int,
        new_status: str,
        requested_by: str,
        business_note: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        actor = CancellationActor(requested_by)
        booking = self._require_booking(booking_id)
        if not can_transition(booking.status, new_status):
            raise InvalidTransitionError(
                f"Cannot change booking status from {booking.status} to {new_status}."
            )

        target = BookingStatus(new_status)
        fields: dict[str, Any] = {"status": target.value}
        if target is BookingStatus.CANCELLED:
            fields["cancelled_at"] = utc_now(now)
            fields["cancelled_by"] = actor.value
        if business_note is not None:
            fields["business_notes"] = business_note

        previous = booking.status
        updated = self._store.update_status(booking.id, fields, expected_status=previous)
        _log_event(
            "booking_status_changed",
            booking_id=updated.id,
            business_id=updated.business_id,
            from_status=previous,
            to_status=target.value,
            requested_by=actor.value,
        )
        return updated

    def _require_booking(self, booking_id: int) -> Booking:
        booking = self._store.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found.")
        return booking


def _cancellation_window(business: Business) -> int:
    if business.cancellation_hours is None:
        return DEFAULT_CANCELLATION_HOURS
    return int(business.cancellation_hours)


def _check_advance_window(policies: dict[str, Any], on_date: date, today: date) -> None:
    advance_days = _policy_int(policies, "booking_advance_days")
    if advance_days is None:
        return
    try:
        latest = today + timedelta(days=advance_days)
    except OverflowError:
        return
    if on_date > latest:
        raise PolicyViolationError(f"Bookings can only be made up to {advance_days} days in advance.")


def _check_daily_cap(policies: dict[str, Any], occupying_count: int) -> None:
    max_per_day = _policy_int(policies, "max_bookings_per_day")
    if max_per_day is None:
        return
    if occupying_count >= max_per_day:
        raise PolicyViolationError("No more bookings are accepted for this day.")


def _policy_int(policies: dict[str, Any], key: str) -> int | None:
    raw = policies.get(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s policy value %r.", key, raw)
        return None
    if value < 0:
        logger.warning("Ignoring negative %s policy value %r.", key, raw)
        return None
    return value


def _log_event(event: str, **fields: Any) -> None:
    logger.info(json.dumps({"event": event, **fields}))
