from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from app.bookings.find_booking import booking_stats
from app.db.locks import DayLockRegistry
from app.db.models import Booking
from app.db.sql_store import SqlAlchemyBookingStore
from app.errors import NotFoundError


NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)

ROWS = [
    (date(2026, 3, 1), 540, "pending", 1, "80.00", "SAR"),
    (date(2026, 3, 1), 600, "confirmed", 2, "80.00", "SAR"),
    (date(2026, 3, 1), 660, "cancelled", 1, "80.00", "SAR"),
    (date(2026, 3, 10), 600, "completed", 3, "80.00", "SAR"),
    (date(2026, 2, 20), 600, "completed", 1, "80.00", "SAR"),
    (date(2026, 3, 12), 600, "no_show", 2, "80.00", "SAR"),
    (date(2026, 3, 20), 600, "completed", 4, "25.50", "USD"),
]


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_store, session_factory):
    if request.param == "memory":
        yield memory_store
        return
    db = session_factory()
    yield SqlAlchemyBookingStore(db=db, day_locks=DayLockRegistry())
    db.close()


@pytest.fixture
def seeded_store(store):
    for on_date, start, status, customer_id, price, currency in ROWS:
        store.insert(
            Booking(
                business_id=1,
                service_id=10,
                customer_id=customer_id,
                date=on_date,
                start_minute=start,
                end_minute=start + 60,
                status=status,
                total_price=Decimal(price),
                currency=currency,
            )
        )
    return store


def test_business_stats(seeded_store):
    stats = booking_stats(seeded_store, business_id=1, now=NOW)

    assert stats["date"] == "2026-03-01"
    assert stats["total_bookings"] == 7
    assert stats["by_status"] == {
        "pending": 1,
        "confirmed": 1,
        "completed": 3,
        "cancelled": 1,
        "no_show": 1,
    }
    assert stats["today_bookings"] == 2
    assert stats["monthly_bookings"] == 6
    assert stats["revenue"] == {"SAR": "160.00", "USD": "25.50"}
    assert stats["monthly_revenue"] == {"SAR": "80.00", "USD": "25.50"}
    assert stats["total_customers"] == 4


def test_customer_stats(seeded_store):
    stats = booking_stats(seeded_store, customer_id=1, now=NOW)

    assert stats["total_bookings"] == 3
    assert stats["by_status"]["pending"] == 1
    assert stats["by_status"]["cancelled"] == 1
    assert stats["by_status"]["completed"] == 1
    assert stats["today_bookings"] == 1
    assert stats["monthly_bookings"] == 2
    assert stats["revenue"] == {"SAR": "80.00"}
    assert stats["monthly_revenue"] == {}
    assert "total_customers" not in stats


def test_empty_business_stats(store):
    stats = booking_stats(store, business_id=1, now=NOW)

    assert stats["total_bookings"] == 0
    assert set(stats["by_status"].values()) == {0}
    assert stats["revenue"] == {}
    assert stats["total_customers"] == 0


def test_stats_follow_business_timezone(memory_store, make_business):
    memory_store.add_business(make_business(timezone="Asia/Riyadh"))
    memory_store.insert(
        Booking(
            business_id=1,
            service_id=10,
            customer_id=1,
            date=date(2026, 3, 2),
            start_minute=600,
            end_minute=660,
            status="pending",
            total_price=Decimal("80.00"),
            currency="SAR",
        )
    )

    stats = booking_stats(
        memory_store, business_id=1, now=datetime(2026, 3, 1, 22, 30, tzinfo=timezone.utc)
    )

    assert stats["date"] == "2026-03-02"
    assert stats["today_bookings"] == 1


def test_stats_for_unknown_business(store):
    with pytest.raises(NotFoundError):
        booking_stats(store, business_id=404, now=NOW)


def test_stats_need_exactly_one_owner(store):
    with pytest.raises(ValueError):
        booking_stats(store, now=NOW)
    with pytest.raises(ValueError):
        booking_stats(store, business_id=1, customer_id=1, now=NOW)
