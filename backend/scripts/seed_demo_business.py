from decimal import Decimal

from app.db.models import Business, Service
from app.db.session import SessionLocal


WEEKDAY_HOURS = {"is_open": True, "open": "09:00", "close": "17:00"}


def seed_demo_business() -> None:
    session = SessionLocal()
    try:
        existing = session.query(Business).filter(Business.external_id == "demo").first()
        if existing is not None:
            print(f"Demo business already exists with id={existing.id}")
            return

        demo = Business(
            external_id="demo",
            name="Demo Salon",
            timezone="Asia/Riyadh",
            phone="+966555550100",
            working_hours_json={
                "sunday": WEEKDAY_HOURS,
                "monday": WEEKDAY_HOURS,
                "tuesday": WEEKDAY_HOURS,
                "wednesday": WEEKDAY_HOURS,
                "thursday": WEEKDAY_HOURS,
                "friday": {"is_open": False},
                "saturday": {"is_open": True, "open": "10:00", "close": "14:00"},
            },
            policies_json={"booking_advance_days": 30, "max_bookings_per_day": 50},
            cancellation_hours=24,
        )
        session.add(demo)
        session.flush()
        session.add(
            Service(
                business_id=demo.id,
                name="Haircut",
                duration_minutes=60,
                price=Decimal("80.00"),
                currency="SAR",
            )
        )
        session.commit()
        print(f"Created demo business with id={demo.id}")
    finally:
        session.close()


if __name__ == "__main__":
    seed_demo_business()
