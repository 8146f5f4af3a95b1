from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.db.models import Business, Service


class CreateServiceArgs(BaseModel):
    name: str = Field(min_length=1)
    duration_minutes: int = Field(ge=15, le=480)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    currency: str = Field(default="SAR", pattern=r"^(SAR|USD|EUR)$")
    is_active: bool = True


def create_service(db: Session, business_id: int, args: CreateServiceArgs) -> Service | None:
    if db.get(Business, business_id) is None:
        return None

    service = Service(
        business_id=business_id,
        name=args.name,
        duration_minutes=args.duration_minutes,
        price=args.price,
        currency=args.currency,
        is_active=args.is_active,
    )
    db.add(service)
    db.commit()
    return service


def list_services(db: Session, business_id: int) -> list[Service]:
    return list(
        db.query(Service).filter(Service.business_id == business_id).order_by(Service.id).all()
    )


def serialize_service(service: Service) -> dict[str, Any]:
    return {
        "id": service.id,
        "business_id": service.business_id,
        "name": service.name,
        "duration_minutes": service.duration_minutes,
        "price": str(service.price),
        "currency": service.currency,
        "is_active": service.is_active,
    }
