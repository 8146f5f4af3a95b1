from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from app.bookings.check_availability import CheckAvailabilityArgs, get_available_slots
from app.db.models import Booking
from app.errors import NotFoundError
from app.scheduling.availability import resolve_available_slots


NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
MONDAY = date(2026, 3, 2)
FRIDAY = date(2026, 3, 6)


def _insert(store, start, end, status="confirmed", staff_id=None, on_date=MONDAY):
    return store.insert(
        Booking(
            business_id=1,
            service_id=10,
            customer_id=99,
            staff_id=staff_id,
            date=on_date,
            start_minute=start,
            end_minute=end,
            status=status,
            total_price=Decimal("80.00"),
            currency="SAR",
        )
    )


def _labels(slots):
    return [slot["start"] for slot in slots]


def test_open_monday_lists_every_hourly_slot(memory_store):
    slots = get_available_slots(
        memory_store,
        CheckAvailabilityArgs(business_id=1, service_id=10, date=MONDAY),
        now=NOW,
    )

    assert len(slots) == 15
    assert slots[0] == {"start": "09:00", "end": "10:00"}
    assert slots[-1] == {"start": "16:00", "end": "17:00"}


def test_confirmed_booking_blocks_overlapping_candidates(memory_store):
    _insert(memory_store, 600, 660)

    slots = resolve_available_slots(
        memory_store, 1, 10, MONDAY, now=NOW, include_unavailable=True
    )
    by_start = {slot.start_minute: slot for slot in slots}

    assert by_start[630].available is False
    assert by_start[570].available is False
    assert by_start[600].available is False
    assert by_start[660].available is True
    assert by_start[540].available is True


def test_unavailable_slots_are_dropped_from_public_list(memory_store):
    _insert(memory_store, 600, 660)

    labels = _labels(
        get_available_slots(
            memory_store, CheckAvailabilityArgs(business_id=1, service_id=10, date=MONDAY), now=NOW
        )
    )

    assert "10:30" not in labels
    assert "11:00" in labels
    assert len(labels) == 12


def test_cancelled_and_completed_bookings_do_not_block(memory_store):
    _insert(memory_store, 600, 660, status="cancelled")
    _insert(memory_store, 720, 780, status="completed")
    _insert(memory_store, 840, 900, status="no_show")

    slots = resolve_available_slots(memory_store, 1, 10, MONDAY, now=NOW)

    assert len(slots) == 15


def test_closed_day_returns_empty_list(memory_store):
    assert resolve_available_slots(memory_store, 1, 10, FRIDAY, now=NOW) == []


def test_past_date_returns_empty_list(memory_store):
    assert resolve_available_slots(memory_store, 1, 10, date(2026, 2, 23), now=NOW) == []


def test_slot_query_is_idempotent(memory_store):
    _insert(memory_store, 600, 660)

    first = resolve_available_slots(memory_store, 1, 10, MONDAY, now=NOW)
    second = resolve_available_slots(memory_store, 1, 10, MONDAY, now=NOW)

    assert first == second


def test_slot_query_sees_new_bookings_immediately(memory_store):
    before = resolve_available_slots(memory_store, 1, 10, MONDAY, now=NOW)
    _insert(memory_store, 540, 600)
    after = resolve_available_slots(memory_store, 1, 10, MONDAY, now=NOW)

    assert len(before) - len(after) == 2


def test_business_granularity_policy(memory_store, make_business):
    memory_store.add_business(make_business(policies_json={"slot_granularity_minutes": 60}))

    slots = resolve_available_slots(memory_store, 1, 10, MONDAY, now=NOW)

    assert len(slots) == 8


def test_staff_scope_only_blocks_that_staff(memory_store, make_business):
    memory_store.add_business(make_business(policies_json={"conflict_scope": "staff"}))
    _insert(memory_store, 600, 660, staff_id=5)

    for_other_staff = resolve_available_slots(memory_store, 1, 10, MONDAY, staff_id=6, now=NOW)
    for_same_staff = resolve_available_slots(memory_store, 1, 10, MONDAY, staff_id=5, now=NOW)

    assert len(for_other_staff) == 15
    assert len(for_same_staff) == 12


@pytest.mark.parametrize(
    "business_overrides, service_overrides",
    [
        ({"is_active": False}, {}),
        ({}, {"is_active": False}),
        ({}, {"business_id": 2}),
    ],
)
def test_inactive_or_foreign_records_raise_not_found(
    memory_store, make_business, make_service, business_overrides, service_overrides
):
    memory_store.add_business(make_business(**business_overrides))
    memory_store.add_service(make_service(**service_overrides))

    with pytest.raises(NotFoundError):
        resolve_available_slots(memory_store, 1, 10, MONDAY, now=NOW)


def test_unknown_service_raises_not_found(memory_store):
    with pytest.raises(NotFoundError):
        resolve_available_slots(memory_store, 1, 999, MONDAY, now=NOW)
