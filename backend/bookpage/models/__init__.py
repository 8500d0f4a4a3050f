from .booking import (
    BOOKING_STATUSES,
    Base,
    BookingAvailability,
    BookingExceptions,
    BookingPages,
    Bookings,
    metadata,
)

__all__ = [
    "BOOKING_STATUSES",
    "Base",
    "BookingAvailability",
    "BookingExceptions",
    "BookingPages",
    "Bookings",
    "metadata",
]
