from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager, nullcontext
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.locks import DayLockRegistry, advisory_lock_key
from app.db.models import Booking, Business, Service
from app.db.store import BookingPage, BookingStore, StatusTotal
from app.errors import InvalidStateError, NotFoundError, StorageError


logger = logging.getLogger("bookings.store")


class SqlAlchemyBookingStore(BookingStore):
    def __init__(self, db: Session, day_locks: DayLockRegistry) -> None:
        self._db = db
        self._day_locks = day_locks
        self._in_day_lock = False

    def get_business(self, business_id: int) -> Business | None:
        with self._storage_errors("get_business"):
            return self._db.get(Business, business_id)

    def get_service(self, service_id: int) -> Service | None:
        with self._storage_errors("get_service"):
            return self._db.get(Service, service_id)

    def get_booking(self, booking_id: int) -> Booking | None:
        with self._storage_errors("get_booking"):
            return self._db.get(Booking, booking_id)

    def find_by_business_and_date(self, business_id: int, on_date: date) -> list[Booking]:
        with self._storage_errors("find_by_business_and_date"):
            stmt = (
                select(Booking)
                .where(Booking.business_id == business_id)
                .where(Booking.date == on_date)
                .order_by(Booking.start_minute, Booking.id)
            )
            return list(self._db.scalars(stmt).all())

    @contextmanager
    def day_lock(self, business_id: int, on_date: date) -> Iterator[None]:
        if self._is_postgres():
            # Released by the commit or rollback below.
            with self._storage_errors("day_lock"):
                self._db.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"),
                    {"key": advisory_lock_key(business_id, on_date)},
                )
            process_lock = nullcontext()
        else:
            process_lock = self._day_locks.get(business_id, on_date)

        with process_lock:
            self._in_day_lock = True
            try:
                yield
                with self._storage_errors("commit"):
                    self._db.commit()
            except Exception:
                self._db.rollback()
                raise
            finally:
                self._in_day_lock = False

    def insert(self, booking: Booking) -> Booking:
        with self._storage_errors("insert"):
            self._db.add(booking)
            self._db.flush()
            if not self._in_day_lock:
                self._db.commit()
        return booking

    def update_status(
        self,
        booking_id: int,
        fields: dict[str, Any],
        expected_status: str | None = None,
    ) -> Booking:
        with self._storage_errors("update_status"):
            booking = self._db.get(
                Booking, booking_id, with_for_update=True, populate_existing=True
            )
            if booking is None:
                self._db.rollback()
                raise NotFoundError("Booking not found.")
            if expected_status is not None and booking.status != expected_status:
                self._db.rollback()
                raise InvalidStateError(f"Booking is now {booking.status}.")
            for field, value in fields.items():
                setattr(booking, field, value)
            self._db.commit()
        return booking

    def list_business_bookings(
        self,
        business_id: int,
        status: str | None = None,
        on_date: date | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> BookingPage:
        conditions = [Booking.business_id == business_id]
        if status:
            conditions.append(Booking.status == status)
        if on_date is not None:
            conditions.append(Booking.date == on_date)
        return self._page(
            conditions,
            order_by=(Booking.date.asc(), Booking.start_minute.asc(), Booking.id.asc()),
            offset=offset,
            limit=limit,
        )

    def list_customer_bookings(
        self,
        customer_id: int,
        status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> BookingPage:
        conditions = [Booking.customer_id == customer_id]
        if status:
            conditions.append(Booking.status == status)
        return self._page(
            conditions,
            order_by=(Booking.date.desc(), Booking.start_minute.asc(), Booking.id.asc()),
            offset=offset,
            limit=limit,
        )

    def status_totals(
        self,
        business_id: int | None = None,
        customer_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[StatusTotal]:
        conditions = []
        if business_id is not None:
            conditions.append(Booking.business_id == business_id)
        if customer_id is not None:
            conditions.append(Booking.customer_id == customer_id)
        if date_from is not None:
            conditions.append(Booking.date >= date_from)
        if date_to is not None:
            conditions.append(Booking.date < date_to)

        stmt = (
            select(
                Booking.status,
                Booking.currency,
                func.count(Booking.id),
                func.coalesce(func.sum(Booking.total_price), 0),
            )
            .where(*conditions)
            .group_by(Booking.status, Booking.currency)
            .order_by(Booking.status, Booking.currency)
        )
        with self._storage_errors("status_totals"):
            rows = self._db.execute(stmt).all()
        return [
            StatusTotal(status=status, currency=currency, count=int(count), amount=Decimal(str(amount)))
            for status, currency, count, amount in rows
        ]

    def count_customers(self, business_id: int) -> int:
        stmt = select(func.count(func.distinct(Booking.customer_id))).where(
            Booking.business_id == business_id
        )
        with self._storage_errors("count_customers"):
            return int(self._db.scalar(stmt) or 0)

    def _page(self, conditions: list[Any], order_by: tuple, offset: int, limit: int) -> BookingPage:
        with self._storage_errors("list_bookings"):
            total = self._db.scalar(select(func.count()).select_from(Booking).where(*conditions))
            stmt = select(Booking).where(*conditions).order_by(*order_by).offset(offset).limit(limit)
            return BookingPage(items=list(self._db.scalars(stmt).all()), total=int(total or 0))

    def _is_postgres(self) -> bool:
        return self._db.get_bind().dialect.name == "postgresql"

    @contextmanager
    def _storage_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.exception("Booking store operation failed: %s", operation)
            raise StorageError(f"Storage failure during {operation}.") from exc
