from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from app.db.store import BookingStore
from app.scheduling.availability import resolve_available_slots


class CheckAvailabilityArgs(BaseModel):
    business_id: int
    service_id: int
    date: date_type
    staff_id: int | None = None


def parse_check_availability_args(raw_args: dict[str, Any]) -> CheckAvailabilityArgs:
    return CheckAvailabilityArgs.model_validate(raw_args)


def get_available_slots(
    store: BookingStore,
    args: CheckAvailabilityArgs,
    now: datetime | None = None,
) -> list[dict[str, str]]:
    slots = resolve_available_slots(
        store=store,
        business_id=args.business_id,
        service_id=args.service_id,
        on_date=args.date,
        staff_id=args.staff_id,
        now=now,
    )
    return [slot.to_dict() for slot in slots]


def map_validation_error(error: ValidationError) -> dict[str, str]:
    return {
        "error_code": "INVALID_ARGS",
        "human_message": f"Invalid args: {error.errors()[0]['msg']}",
    }

