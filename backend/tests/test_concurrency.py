import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone

from app.bookings.lifecycle import BookingLifecycleManager
from app.db.locks import DayLockRegistry, advisory_lock_key
from app.db.sql_store import SqlAlchemyBookingStore
from app.errors import ConflictError
from app.scheduling.conflicts import is_occupying


NOW = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
MONDAY = date(2026, 3, 2)


def _race(workers, attempt):
    barrier = threading.Barrier(workers)

    def run(index):
        barrier.wait()
        try:
            return attempt(index)
        except ConflictError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(run, range(workers)))


def test_same_slot_race_on_memory_store_has_one_winner(memory_store):
    manager = BookingLifecycleManager(memory_store)

    results = _race(
        20,
        lambda index: manager.create(
            business_id=1,
            service_id=10,
            customer_id=100 + index,
            on_date=MONDAY,
            start_minute=600,
            now=NOW,
        ),
    )

    winners = [r for r in results if not isinstance(r, ConflictError)]
    losers = [r for r in results if isinstance(r, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == 19
    assert all(loser.blocking.id == winners[0].id for loser in losers)
    assert len(memory_store.find_by_business_and_date(1, MONDAY)) == 1


def test_overlapping_race_on_memory_store_keeps_intervals_disjoint(memory_store):
    manager = BookingLifecycleManager(memory_store)
    starts = [600, 615, 630, 645, 660, 675]

    _race(
        len(starts),
        lambda index: manager.create(
            business_id=1,
            service_id=10,
            customer_id=index,
            on_date=MONDAY,
            start_minute=starts[index],
            now=NOW,
        ),
    )

    rows = sorted(
        (b for b in memory_store.find_by_business_and_date(1, MONDAY) if is_occupying(b)),
        key=lambda b: b.start_minute,
    )
    for earlier, later in zip(rows, rows[1:]):
        assert earlier.end_minute <= later.start_minute


def test_same_slot_race_on_sql_store_has_one_winner(file_session_factory):
    day_locks = DayLockRegistry()
    workers = 8

    def attempt(index):
        db = file_session_factory()
        try:
            manager = BookingLifecycleManager(SqlAlchemyBookingStore(db=db, day_locks=day_locks))
            booking = manager.create(
                business_id=1,
                service_id=10,
                customer_id=200 + index,
                on_date=MONDAY,
                start_minute=600,
                now=NOW,
            )
            return booking.id
        finally:
            db.close()

    results = _race(workers, attempt)

    assert len([r for r in results if isinstance(r, int)]) == 1
    assert len([r for r in results if isinstance(r, ConflictError)]) == workers - 1

    db = file_session_factory()
    try:
        store = SqlAlchemyBookingStore(db=db, day_locks=day_locks)
        assert len(store.find_by_business_and_date(1, MONDAY)) == 1
    finally:
        db.close()


def test_day_lock_registry_shares_one_lock_per_business_day():
    registry = DayLockRegistry()
    day = date(2030, 1, 7)

    assert registry.get(1, day) is registry.get(1, day)
    assert registry.get(1, day) is not registry.get(2, day)
    assert registry.get(1, day) is not registry.get(1, date(2030, 1, 8))
    assert len(registry) == 3


def test_day_lock_registry_drops_stale_dates():
    registry = DayLockRegistry()

    registry.get(1, date(2000, 1, 3))
    registry.get(1, date(2000, 1, 4))

    assert len(registry) == 1


def test_day_lock_registry_keeps_held_locks():
    registry = DayLockRegistry()
    held = registry.get(1, date(2000, 1, 3))

    with held:
        registry.get(1, date(2030, 1, 7))
        registry.prune_before(date(2030, 1, 1))
        assert len(registry) == 2
        assert registry.get(1, date(2000, 1, 3)) is held

    registry.prune_before(date(2030, 1, 1))
    assert len(registry) == 1


def test_advisory_lock_key_is_unique_per_business_day():
    assert advisory_lock_key(1, MONDAY) == 120260302
    assert advisory_lock_key(12, MONDAY) != advisory_lock_key(1, MONDAY)
    assert advisory_lock_key(1, date(2026, 3, 3)) != advisory_lock_key(1, MONDAY)
