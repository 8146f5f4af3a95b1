from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from app.db.locks import DayLockRegistry
from app.db.models import Booking, Business, Service
from app.db.store import BookingPage, BookingStore, StatusTotal
from app.errors import InvalidStateError, NotFoundError


class InMemoryBookingStore(BookingStore):
    def __init__(
        self,
        businesses: list[Business] | None = None,
        services: list[Service] | None = None,
        day_locks: DayLockRegistry | None = None,
    ) -> None:
        self._businesses: dict[int, Business] = {b.id: b for b in businesses or []}
        self._services: dict[int, Service] = {s.id: s for s in services or []}
        self._bookings: dict[int, Booking] = {}
        self._ids = itertools.count(1)
        self._write_lock = threading.Lock()
        self._day_locks = day_locks or DayLockRegistry()

    def add_business(self, business: Business) -> Business:
        self._businesses[business.id] = business
        return business

    def add_service(self, service: Service) -> Service:
        self._services[service.id] = service
        return service

    def get_business(self, business_id: int) -> Business | None:
        return self._businesses.get(business_id)

    def get_service(self, service_id: int) -> Service | None:
        return self._services.get(service_id)

    def get_booking(self, booking_id: int) -> Booking | None:
        return self._bookings.get(booking_id)

    def find_by_business_and_date(self, business_id: int, on_date: date) -> list[Booking]:
        rows = [b for b in self._snapshot() if b.business_id == business_id and b.date == on_date]
        return sorted(rows, key=lambda b: (b.start_minute, b.id))

    @contextmanager
    def day_lock(self, business_id: int, on_date: date) -> Iterator[None]:
        with self._day_locks.get(business_id, on_date):
            yield

    def insert(self, booking: Booking) -> Booking:
        now = datetime.now(timezone.utc)
        with self._write_lock:
            booking.id = next(self._ids)
            booking.created_at = now
            booking.updated_at = now
            self._bookings[booking.id] = booking
        return booking

    def update_status(
        self,
        booking_id: int,
        fields: dict[str, Any],
        expected_status: str | None = None,
    ) -> Booking:
        with self._write_lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise NotFoundError("Booking not found.")
            if expected_status is not None and booking.status != expected_status:
                raise InvalidStateError(f"Booking is now {booking.status}.")
            for field, value in fields.items():
                setattr(booking, field, value)
            booking.updated_at = datetime.now(timezone.utc)
        return booking

    def list_business_bookings(
        self,
        business_id: int,
        status: str | None = None,
        on_date: date | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> BookingPage:
        rows = [
            b
            for b in self._snapshot()
            if b.business_id == business_id
            and (not status or b.status == status)
            and (on_date is None or b.date == on_date)
        ]
        rows.sort(key=lambda b: (b.date, b.start_minute, b.id))
        return BookingPage(items=rows[offset : offset + limit], total=len(rows))

    def list_customer_bookings(
        self,
        customer_id: int,
        status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> BookingPage:
        rows = [
            b
            for b in self._snapshot()
            if b.customer_id == customer_id and (not status or b.status == status)
        ]
        rows.sort(key=lambda b: (-b.date.toordinal(), b.start_minute, b.id))
        return BookingPage(items=rows[offset : offset + limit], total=len(rows))

    def status_totals(
        self,
        business_id: int | None = None,
        customer_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[StatusTotal]:
        counts: dict[tuple[str, str], int] = defaultdict(int)
        amounts: dict[tuple[str, str], Decimal] = defaultdict(Decimal)
        for booking in self._snapshot():
            if business_id is not None and booking.business_id != business_id:
                continue
            if customer_id is not None and booking.customer_id != customer_id:
                continue
            if date_from is not None and booking.date < date_from:
                continue
            if date_to is not None and booking.date >= date_to:
                continue
            key = (booking.status, booking.currency)
            counts[key] += 1
            amounts[key] += Decimal(booking.total_price or 0)
        totals = []
        for status, currency in sorted(counts):
            key = (status, currency)
            totals.append(
                StatusTotal(status=status, currency=currency, count=counts[key], amount=amounts[key])
            )
        return totals

    def count_customers(self, business_id: int) -> int:
        return len({b.customer_id for b in self._snapshot() if b.business_id == business_id})

    def _snapshot(self) -> list[Booking]:
        with self._write_lock:
            return list(self._bookings.values())
