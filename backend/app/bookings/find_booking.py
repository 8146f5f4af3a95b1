from __future__ import annotations

import math
from datetime import date as date_type, datetime, timedelta
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from app.bookings.lifecycle import BookingStatus
from app.config import DEFAULT_TIMEZONE
from app.db.models import Booking
from app.db.store import BookingPage, BookingStore, StatusTotal
from app.errors import NotFoundError
from app.scheduling.clock import business_today, format_minutes
from app.scheduling.conflicts import OCCUPYING_STATUSES


CENTS = Decimal("0.01")


class ListBookingsArgs(BaseModel):
    status: BookingStatus | None = None
    date: date_type | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_list_bookings_args(raw_args: dict[str, Any]) -> ListBookingsArgs:
    cleaned = {key: value for key, value in raw_args.items() if value not in (None, "")}
    return ListBookingsArgs.model_validate(cleaned)


def get_booking(store: BookingStore, booking_id: int) -> Booking:
    booking = store.get_booking(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found.")
    return booking


def list_business_bookings(
    store: BookingStore, business_id: int, args: ListBookingsArgs
) -> dict[str, Any]:
    if store.get_business(business_id) is None:
        raise NotFoundError("Business not found.")
    page = store.list_business_bookings(
        business_id=business_id,
        status=args.status.value if args.status else None,
        on_date=args.date,
        offset=args.offset,
        limit=args.limit,
    )
    return _serialize_page(page, args)


def list_customer_bookings(
    store: BookingStore, customer_id: int, args: ListBookingsArgs
) -> dict[str, Any]:
    page = store.list_customer_bookings(
        customer_id=customer_id,
        status=args.status.value if args.status else None,
        offset=args.offset,
        limit=args.limit,
    )
    return _serialize_page(page, args)


def booking_stats(
    store: BookingStore,
    business_id: int | None = None,
    customer_id: int | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Booking counts and revenue for one business or one customer.

    Revenue is the summed ``total_price`` of completed bookings, per currency.
    "Today" and "this month" are calendar dates in the business timezone, or
    in the default timezone for customer stats.
    """
    if (business_id is None) == (customer_id is None):
        raise ValueError("Pass exactly one of business_id or customer_id.")

    timezone_name = DEFAULT_TIMEZONE
    if business_id is not None:
        business = store.get_business(business_id)
        if business is None:
            raise NotFoundError("Business not found.")
        timezone_name = business.timezone

    today = business_today(timezone_name, now)
    month_start = today.replace(day=1)
    next_month = (month_start + timedelta(days=32)).replace(day=1)
    owner = {"business_id": business_id, "customer_id": customer_id}

    overall = store.status_totals(**owner)
    monthly = store.status_totals(**owner, date_from=month_start, date_to=next_month)
    todays = store.status_totals(**owner, date_from=today, date_to=today + timedelta(days=1))

    by_status = {status.value: 0 for status in BookingStatus}
    for row in overall:
        by_status[row.status] = by_status.get(row.status, 0) + row.count

    stats = {
        "date": today.isoformat(),
        "total_bookings": sum(by_status.values()),
        "by_status": by_status,
        "today_bookings": sum(row.count for row in todays if row.status in OCCUPYING_STATUSES),
        "monthly_bookings": sum(row.count for row in monthly),
        "revenue": _completed_revenue(overall),
        "monthly_revenue": _completed_revenue(monthly),
    }
    if business_id is not None:
        stats["total_customers"] = store.count_customers(business_id)
    return stats


def serialize_booking(booking: Booking) -> dict[str, Any]:
    return {
        "booking_id": booking.id,
        "business_id": booking.business_id,
        "service_id": booking.service_id,
        "customer_id": booking.customer_id,
        "staff_id": booking.staff_id,
        "date": booking.date.isoformat(),
        "start_time": format_minutes(booking.start_minute),
        "end_time": format_minutes(booking.end_minute),
        "status": booking.status,
        "total_price": str(booking.total_price),
        "currency": booking.currency,
        "notes": {
            "customer": booking.customer_notes,
            "business": booking.business_notes,
        },
        "cancellation": {
            "reason": booking.cancellation_reason,
            "cancelled_by": booking.cancelled_by,
            "cancelled_at": booking.cancelled_at.isoformat() if booking.cancelled_at else None,
        },
    }


def _serialize_page(page: BookingPage, args: ListBookingsArgs) -> dict[str, Any]:
    return {
        "bookings": [serialize_booking(item) for item in page.items],
        "count": len(page.items),
        "pagination": {
            "page": args.page,
            "limit": args.limit,
            "total": page.total,
            "pages": math.ceil(page.total / args.limit) if page.total else 0,
        },
    }


def _completed_revenue(rows: list[StatusTotal]) -> dict[str, str]:
    revenue: dict[str, Decimal] = {}
    for row in rows:
        if row.status == BookingStatus.COMPLETED.value:
            revenue[row.currency] = revenue.get(row.currency, Decimal("0")) + row.amount
    return {currency: str(amount.quantize(CENTS)) for currency, amount in sorted(revenue.items())}
