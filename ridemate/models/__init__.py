"""Models package for RideMate application."""

from .base import Base, BaseModel
from .booking import Booking, BookingStatus, PaymentMethod, PaymentStatus
from .trip import BOOKABLE_TRIP_STATUSES, Trip, TripStatus, TripType, VehicleType

__all__ = [
    "Base",
    "BaseModel",
    "Trip",
    "TripStatus",
    "TripType",
    "VehicleType",
    "BOOKABLE_TRIP_STATUSES",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "PaymentMethod",
]
