from __future__ import annotations

from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import DEFAULT_CANCELLATION_HOURS, DEFAULT_TIMEZONE
from app.db.models import Business
from app.scheduling.conflicts import ConflictScope
from app.scheduling.working_hours import parse_working_hours


class PoliciesArgs(BaseModel):
    model_config = ConfigDict(extra="allow")

    slot_granularity_minutes: int | None = Field(default=None, gt=0)
    conflict_scope: ConflictScope | None = None
    booking_advance_days: int | None = Field(default=None, ge=0, le=3650)
    max_bookings_per_day: int | None = Field(default=None, ge=0)


class CreateBusinessArgs(BaseModel):
    name: str = Field(min_length=1)
    external_id: str | None = None
    timezone: str = DEFAULT_TIMEZONE
    phone: str | None = None
    working_hours: dict[str, Any] = Field(default_factory=dict)
    policies_json: dict[str, Any] | None = None
    cancellation_hours: int = Field(default=DEFAULT_CANCELLATION_HOURS, ge=0)
    allow_cancellation: bool = True
    is_active: bool = True

    @field_validator("working_hours")
    @classmethod
    def validate_working_hours(cls, value: dict[str, Any]) -> dict[str, Any]:
        parse_working_hours(value)
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return _validate_timezone(value)

    @field_validator("policies_json")
    @classmethod
    def validate_policies(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        return _normalize_policies(value)


class UpdateBusinessArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    external_id: str | None = None
    timezone: str | None = None
    phone: str | None = None
    working_hours: dict[str, Any] | None = None
    policies_json: dict[str, Any] | None = None
    cancellation_hours: int | None = Field(default=None, ge=0)
    allow_cancellation: bool | None = None
    is_active: bool | None = None

    @field_validator("working_hours")
    @classmethod
    def validate_working_hours(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        if value is not None:
            parse_working_hours(value)
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        return _validate_timezone(value) if value is not None else None

    @field_validator("policies_json")
    @classmethod
    def validate_policies(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        return _normalize_policies(value)


def create_business(db: Session, args: CreateBusinessArgs) -> Business:
    if args.external_id and _external_id_exists(db, external_id=args.external_id):
        raise ValueError("external_id already exists")

    business = Business(
        name=args.name,
        external_id=args.external_id,
        timezone=args.timezone,
        phone=args.phone,
        working_hours_json=args.working_hours,
        policies_json=args.policies_json,
        cancellation_hours=args.cancellation_hours,
        allow_cancellation=args.allow_cancellation,
        is_active=args.is_active,
    )
    db.add(business)
    _commit_or_raise_duplicate(db)
    return business


def list_businesses(db: Session) -> list[Business]:
    return list(db.query(Business).order_by(Business.id).all())


def update_business(db: Session, business_id: int, args: UpdateBusinessArgs) -> Business | None:
    business = db.get(Business, business_id)
    if business is None:
        return None

    patch = args.model_dump(exclude_unset=True)
    new_external_id = patch.get("external_id")
    if new_external_id and new_external_id != business.external_id:
        if _external_id_exists(db, external_id=new_external_id):
            raise ValueError("external_id already exists")

    if "working_hours" in patch:
        patch["working_hours_json"] = patch.pop("working_hours")
    for field, value in patch.items():
        setattr(business, field, value)

    _commit_or_raise_duplicate(db)
    return business


def serialize_business(business: Business) -> dict[str, Any]:
    return {
        "id": business.id,
        "name": business.name,
        "external_id": business.external_id,
        "timezone": business.timezone,
        "phone": business.phone,
        "working_hours": business.working_hours_json or {},
        "policies_json": business.policies_json,
        "cancellation_hours": business.cancellation_hours,
        "allow_cancellation": business.allow_cancellation,
        "is_active": business.is_active,
        "created_at": business.created_at.isoformat() if business.created_at else None,
    }


def _commit_or_raise_duplicate(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if "external_id" in str(exc).lower():
            raise ValueError("external_id already exists") from exc
        raise


def _external_id_exists(db: Session, external_id: str) -> bool:
    target = (external_id or "").strip()
    if not target:
        return False
    return db.query(Business).filter(Business.external_id == target).first() is not None


def _validate_timezone(value: str) -> str:
    cleaned = (value or "").strip()
    try:
        ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone '{value}'") from exc
    return cleaned


def _normalize_policies(value: dict[str, Any] | None) -> dict[str, Any] | None:
    if value is None:
        return None
    try:
        policies = PoliciesArgs.model_validate(value)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        raise ValueError(f"Invalid policy '{field}': {error['msg']}") from exc
    return policies.model_dump(mode="json", exclude_none=True)
