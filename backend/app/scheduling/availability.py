from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from app.config import SLOT_GRANULARITY_MINUTES
from app.db.models import Business, Service
from app.db.store import BookingStore
from app.errors import NotFoundError
from app.scheduling.clock import business_today
from app.scheduling.conflicts import check_conflict, is_occupying, resolve_conflict_scope
from app.scheduling.slots import Slot, SlotGenerator
from app.scheduling.working_hours import resolve_day


logger = logging.getLogger("bookings.availability")


def load_business_and_service(
    store: BookingStore,
    business_id: int,
    service_id: int,
) -> tuple[Business, Service]:
    business = store.get_business(business_id)
    if business is None or not business.is_active:
        raise NotFoundError("Business not found or inactive.")

    service = store.get_service(service_id)
    if service is None or not service.is_active or service.business_id != business.id:
        raise NotFoundError("Service not found or inactive.")
    return business, service


def resolve_slot_granularity(policies: dict[str, Any] | None) -> int:
    raw = (policies or {}).get("slot_granularity_minutes", SLOT_GRANULARITY_MINUTES)
    try:
        granularity = int(raw)
    except (TypeError, ValueError):
        return SLOT_GRANULARITY_MINUTES
    return granularity if granularity > 0 else SLOT_GRANULARITY_MINUTES


def resolve_available_slots(
    store: BookingStore,
    business_id: int,
    service_id: int,
    on_date: date,
    staff_id: int | None = None,
    now: datetime | None = None,
    include_unavailable: bool = False,
) -> list[Slot]:
    """Slots for the service on the date, marked against current bookings.

    Recomputed from the store on every call. With ``include_unavailable`` the
    blocked candidates are returned too, flagged ``available=False``.
    """
    business, service = load_business_and_service(store, business_id, service_id)

    if on_date < business_today(business.timezone, now):
        return []

    day = resolve_day(business.working_hours_json, on_date)
    if not day.is_open:
        return []

    candidates = SlotGenerator(
        open_minute=day.open_minute,
        close_minute=day.close_minute,
        duration=service.duration_minutes,
        granularity=resolve_slot_granularity(business.policies_json),
    )
    occupying = [
        b for b in store.find_by_business_and_date(business.id, on_date) if is_occupying(b)
    ]
    scope = resolve_conflict_scope(business.policies_json)

    slots = []
    for candidate in candidates:
        check = check_conflict(
            candidate.start_minute,
            candidate.end_minute,
            occupying,
            scope=scope,
            staff_id=staff_id,
        )
        slot = candidate.mark(not check.conflict)
        if slot.available or include_unavailable:
            slots.append(slot)

    logger.debug(
        "Resolved %s slots for business_id=%s service_id=%s date=%s",
        len(slots),
        business.id,
        service.id,
        on_date.isoformat(),
    )
    return slots
