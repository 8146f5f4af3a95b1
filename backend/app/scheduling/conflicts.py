from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.config import CONFLICT_SCOPE


OCCUPYING_STATUSES = frozenset({"pending", "confirmed"})


class ConflictScope(str, Enum):
    BUSINESS = "business"
    STAFF = "staff"


@dataclass(frozen=True)
class ConflictCheck:
    conflict: bool
    blocking: Any | None = None


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval test: [start_a, end_a) and [start_b, end_b) share a minute."""
    return start_a < end_b and end_a > start_b


def is_occupying(booking: Any) -> bool:
    return str(getattr(booking, "status", "") or "").lower() in OCCUPYING_STATUSES


def resolve_conflict_scope(policies: dict[str, Any] | None = None) -> ConflictScope:
    raw = (policies or {}).get("conflict_scope") or CONFLICT_SCOPE
    try:
        return ConflictScope(str(raw).strip().lower())
    except ValueError:
        return ConflictScope.BUSINESS


def check_conflict(
    start_minute: int,
    end_minute: int,
    existing_bookings: Iterable[Any],
    scope: ConflictScope = ConflictScope.BUSINESS,
    staff_id: int | None = None,
    exclude_booking_id: int | None = None,
) -> ConflictCheck:
    for booking in existing_bookings:
        if exclude_booking_id is not None and getattr(booking, "id", None) == exclude_booking_id:
            continue
        if not is_occupying(booking):
            continue
        if scope is ConflictScope.STAFF and not _shares_staff(staff_id, getattr(booking, "staff_id", None)):
            continue
        if intervals_overlap(start_minute, end_minute, booking.start_minute, booking.end_minute):
            return ConflictCheck(conflict=True, blocking=booking)
    return ConflictCheck(conflict=False)


def _shares_staff(requested: int | None, existing: int | None) -> bool:
    # Unassigned bookings block every staff member.
    if requested is None or existing is None:
        return True
    return requested == existing
