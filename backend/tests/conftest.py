import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.db.base import Base  # noqa: E402
from app.db.memory_store import InMemoryBookingStore  # noqa: E402
from app.db.models import Business, Service  # noqa: E402


OPEN_DAY = {"is_open": True, "open": "09:00", "close": "17:00"}
WEEK_HOURS = {
    "sunday": OPEN_DAY,
    "monday": OPEN_DAY,
    "tuesday": OPEN_DAY,
    "wednesday": OPEN_DAY,
    "thursday": OPEN_DAY,
    "friday": {"is_open": False},
    "saturday": OPEN_DAY,
}


def build_business(**overrides) -> Business:
    fields = {
        "id": 1,
        "name": "Demo Salon",
        "timezone": "UTC",
        "working_hours_json": dict(WEEK_HOURS),
        "policies_json": {},
        "cancellation_hours": 24,
        "allow_cancellation": True,
        "is_active": True,
    }
    fields.update(overrides)
    return Business(**fields)


def build_service(**overrides) -> Service:
    fields = {
        "id": 10,
        "business_id": 1,
        "name": "Haircut",
        "duration_minutes": 60,
        "price": Decimal("80.00"),
        "currency": "SAR",
        "is_active": True,
    }
    fields.update(overrides)
    return Service(**fields)


@pytest.fixture
def make_business():
    return build_business


@pytest.fixture
def make_service():
    return build_service


@pytest.fixture
def memory_store():
    return InMemoryBookingStore(businesses=[build_business()], services=[build_service()])


def _seed(factory) -> None:
    session = factory()
    try:
        session.add(build_business())
        session.add(build_service())
        session.commit()
    finally:
        session.close()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    _seed(factory)
    yield factory
    engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'bookings.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    _seed(factory)
    yield factory
    engine.dispose()
