"""Trip model: a driver-offered ride with fixed seat capacity."""

import enum
from datetime import datetime, time, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID

from ridemate.domain.capacity import CapacityLedger
from .base import BaseModel, enum_type


class TripStatus(enum.Enum):
    """Trip status enumeration."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


BOOKABLE_TRIP_STATUSES = (TripStatus.APPROVED, TripStatus.ACTIVE)


class TripType(enum.Enum):
    ONE_WAY = "one-way"
    ROUND_TRIP = "round-trip"


class VehicleType(enum.Enum):
    CAR = "car"
    SUV = "suv"
    HATCHBACK = "hatchback"
    SEDAN = "sedan"
    MOTORCYCLE = "motorcycle"


class Trip(BaseModel):
    """Trip model with cached seat and earnings counters."""

    __tablename__ = "trips"

    __table_args__ = (
        CheckConstraint(
            "booked_seats >= 0 AND booked_seats <= available_seats",
            name="ck_trips_booked_seats_within_capacity",
        ),
        CheckConstraint(
            "available_seats BETWEEN 1 AND 7", name="ck_trips_available_seats_range"
        ),
    )

    driver_id = Column(
        UUID(as_uuid=True),
        nullable=False,
        index=True,
        comment="Reference to the user offering the trip",
    )

    # Route
    from_city = Column(String(100), nullable=False, index=True)
    from_state = Column(String(100), nullable=False)
    from_latitude = Column(Numeric(9, 6), nullable=True)
    from_longitude = Column(Numeric(9, 6), nullable=True)
    to_city = Column(String(100), nullable=False, index=True)
    to_state = Column(String(100), nullable=False)
    to_latitude = Column(Numeric(9, 6), nullable=True)
    to_longitude = Column(Numeric(9, 6), nullable=True)

    # Schedule
    departure_date = Column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Departure day; combined with departure_time for the exact moment",
    )
    departure_time = Column(String(5), nullable=False, comment="HH:MM")
    return_date = Column(DateTime(timezone=True), nullable=True)
    return_time = Column(String(5), nullable=True)
    trip_type = Column(enum_type(TripType, "trip_type"), nullable=False)

    # Vehicle & licence metadata (document fields hold storage URLs)
    vehicle_type = Column(enum_type(VehicleType, "vehicle_type"), nullable=False)
    vehicle_model = Column(String(100), nullable=False)
    vehicle_number = Column(String(20), nullable=False)
    vehicle_color = Column(String(50), nullable=False)
    vehicle_rc_url = Column(String(500), nullable=True)
    vehicle_insurance_url = Column(String(500), nullable=True)
    license_number = Column(String(50), nullable=True)
    license_document_url = Column(String(500), nullable=True)

    # Capacity & money
    available_seats = Column(
        Integer, nullable=False, comment="Seat capacity offered by the driver"
    )
    booked_seats = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Seats held by confirmed bookings",
    )
    price_per_seat = Column(Numeric(10, 2), nullable=False)
    total_earnings = Column(
        Numeric(12, 2),
        nullable=False,
        default=0,
        comment="Sum of total_amount over confirmed bookings",
    )

    pickup_points = Column(JSONB, nullable=False, default=list)
    drop_points = Column(JSONB, nullable=False, default=list)
    amenities = Column(JSONB, nullable=False, default=list)
    rules = Column(JSONB, nullable=False, default=list)
    description = Column(String(500), nullable=True)

    status = Column(
        enum_type(TripStatus, "trip_status"),
        nullable=False,
        default=TripStatus.PENDING,
        index=True,
    )
    admin_remarks = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def remaining_seats(self) -> int:
        return self.available_seats - self.booked_seats

    @property
    def departs_at(self) -> datetime:
        """Exact departure moment: departure_date's UTC calendar day at departure_time."""
        if self.departure_date.tzinfo is None:
            day = self.departure_date.replace(tzinfo=timezone.utc)
        else:
            day = self.departure_date.astimezone(timezone.utc)
        try:
            hours, minutes = (int(part) for part in self.departure_time.split(":"))
            clock = time(hours, minutes)
        except (AttributeError, ValueError):
            return day
        return datetime.combine(day.date(), clock, tzinfo=timezone.utc)

    @property
    def is_bookable(self) -> bool:
        return bool(self.is_active) and self.status in BOOKABLE_TRIP_STATUSES

    def ledger(self) -> CapacityLedger:
        return CapacityLedger(
            available_seats=self.available_seats, booked_seats=self.booked_seats
        )

    def is_owned_by(self, user_id: Optional[object]) -> bool:
        return user_id is not None and self.driver_id == user_id

    def __repr__(self):
        return (
            f"<Trip(id={self.id}, {self.from_city}->{self.to_city}, "
            f"status={self.status.value}, seats={self.booked_seats}/{self.available_seats})>"
        )
