from app.db.base import Base
from app.db.models import Booking, Business, Service

__all__ = [
    "Base",
    "Booking",
    "Business",
    "Service",
]
