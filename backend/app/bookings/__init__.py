from app.bookings.check_availability import (
    get_available_slots,
    map_validation_error,
    parse_check_availability_args,
)
from app.bookings.create_booking import create_booking, parse_create_booking_args
from app.bookings.find_booking import (
    booking_stats,
    get_booking,
    list_business_bookings,
    list_customer_bookings,
    parse_list_bookings_args,
    serialize_booking,
)
from app.bookings.lifecycle import BookingLifecycleManager, BookingStatus
from app.bookings.manage_booking import (
    cancel_booking,
    parse_cancel_booking_args,
    parse_update_booking_status_args,
    update_booking_status,
)

__all__ = [
    "BookingLifecycleManager",
    "BookingStatus",
    "get_available_slots",
    "map_validation_error",
    "parse_check_availability_args",
    "create_booking",
    "parse_create_booking_args",
    "booking_stats",
    "get_booking",
    "list_business_bookings",
    "list_customer_bookings",
    "parse_list_bookings_args",
    "serialize_booking",
    "cancel_booking",
    "parse_cancel_booking_args",
    "parse_update_booking_status_args",
    "update_booking_status",
]
