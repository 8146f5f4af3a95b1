from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from app.db.models import Booking, Business, Service


@dataclass(frozen=True)
class BookingPage:
    items: list[Booking]
    total: int


@dataclass(frozen=True)
class StatusTotal:
    status: str
    currency: str
    count: int
    amount: Decimal


class BookingStore(ABC):
    @abstractmethod
    def get_business(self, business_id: int) -> Business | None:
        raise NotImplementedError

    @abstractmethod
    def get_service(self, service_id: int) -> Service | None:
        raise NotImplementedError

    @abstractmethod
    def get_booking(self, booking_id: int) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def find_by_business_and_date(self, business_id: int, on_date: date) -> list[Booking]:
        """All bookings of the business on the date, in every status."""
        raise NotImplementedError

    @abstractmethod
    def day_lock(self, business_id: int, on_date: date) -> AbstractContextManager[None]:
        """Serialize writers of one business day.

        Reads and the insert made inside the block are committed together on
        exit and rolled back if the block raises.
        """
        raise NotImplementedError

    @abstractmethod
    def insert(self, booking: Booking) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def update_status(
        self,
        booking_id: int,
        fields: dict[str, Any],
        expected_status: str | None = None,
    ) -> Booking:
        """Apply ``fields`` to the booking.

        When ``expected_status`` is given and the stored status differs, raises
        ``InvalidStateError`` without writing.
        """
        raise NotImplementedError

    @abstractmethod
    def list_business_bookings(
        self,
        business_id: int,
        status: str | None = None,
        on_date: date | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> BookingPage:
        raise NotImplementedError

    @abstractmethod
    def list_customer_bookings(
        self,
        customer_id: int,
        status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> BookingPage:
        raise NotImplementedError

    @abstractmethod
    def status_totals(
        self,
        business_id: int | None = None,
        customer_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[StatusTotal]:
        """Booking count and summed ``total_price`` per (status, currency).

        ``date_from`` is inclusive and ``date_to`` exclusive, both on the
        booking date.
        """
        raise NotImplementedError

    @abstractmethod
    def count_customers(self, business_id: int) -> int:
        raise NotImplementedError
