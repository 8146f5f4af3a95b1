from __future__ import annotations

import threading
from datetime import date, datetime, timedelta, timezone


# Past dates never reach a day lock; two days absorbs any timezone offset.
STALE_AFTER_DAYS = 2


class DayLockRegistry:
    """One mutex per (business_id, date), shared by every store in the process.

    Locks for dates well before today are dropped when a new key is added.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[int, date], threading.Lock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def get(self, business_id: int, on_date: date) -> threading.Lock:
        key = (business_id, on_date)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                self._prune_locked(_utc_today() - timedelta(days=STALE_AFTER_DAYS))
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def prune_before(self, cutoff: date) -> None:
        with self._guard:
            self._prune_locked(cutoff)

    def _prune_locked(self, cutoff: date) -> None:
        stale = [key for key, lock in self._locks.items() if key[1] < cutoff and not lock.locked()]
        for key in stale:
            del self._locks[key]


def advisory_lock_key(business_id: int, on_date: date) -> int:
    # yyyymmdd occupies the low eight decimal digits.
    return business_id * 100_000_000 + int(on_date.strftime("%Y%m%d"))


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()
