from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from ridemate.models import Booking, BookingStatus, Trip, TripStatus, TripType, VehicleType

from .common import CamelModel, Money, Point

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class Amenity(str, Enum):
    AC = "ac"
    MUSIC = "music"
    CHARGING_PORT = "charging_port"
    WIFI = "wifi"
    NO_SMOKING = "no_smoking"
    PET_FRIENDLY = "pet_friendly"


class RoutePlace(CamelModel):
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("city", "state")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class Vehicle(CamelModel):
    type: VehicleType
    model: str = Field(..., min_length=1, max_length=100)
    number: str = Field(..., min_length=1, max_length=20)
    color: str = Field(..., min_length=1, max_length=50)
    rc_url: Optional[str] = Field(None, max_length=500)
    insurance_url: Optional[str] = Field(None, max_length=500)

    @field_validator("number")
    @classmethod
    def upper_number(cls, v):
        return v.strip().upper()


class DrivingLicense(CamelModel):
    number: Optional[str] = Field(None, max_length=50)
    document_url: Optional[str] = Field(None, max_length=500)


def day_start(value: date) -> datetime:
    """Departure day stored as UTC midnight."""
    return datetime.combine(value, time(0, 0), tzinfo=timezone.utc)


def _place_columns(prefix: str, place: RoutePlace) -> Dict[str, Any]:
    return {
        f"{prefix}_city": place.city,
        f"{prefix}_state": place.state,
        f"{prefix}_latitude": place.latitude,
        f"{prefix}_longitude": place.longitude,
    }


class _TripFields(CamelModel):
    def to_columns(self, only_set: bool = False) -> Dict[str, Any]:
        """Flatten the nested request body into Trip column values."""
        data = self.model_dump(exclude_unset=only_set)
        columns: Dict[str, Any] = {}

        for prefix, attr in (("from", "from_"), ("to", "to")):
            if data.get(attr) is not None:
                columns.update(_place_columns(prefix, getattr(self, attr)))
        if data.get("vehicle") is not None:
            vehicle = self.vehicle
            columns.update(
                vehicle_type=vehicle.type,
                vehicle_model=vehicle.model,
                vehicle_number=vehicle.number,
                vehicle_color=vehicle.color,
                vehicle_rc_url=vehicle.rc_url,
                vehicle_insurance_url=vehicle.insurance_url,
            )
        if "driving_license" in data and self.driving_license is not None:
            columns.update(
                license_number=self.driving_license.number,
                license_document_url=self.driving_license.document_url,
            )
        for name in ("departure_date", "return_date"):
            if name in data:
                value = getattr(self, name)
                columns[name] = day_start(value) if value is not None else None
        for name in ("pickup_points", "drop_points"):
            if name in data:
                columns[name] = [
                    point.model_dump(mode="json") for point in getattr(self, name) or []
                ]
        if "amenities" in data:
            columns["amenities"] = [amenity.value for amenity in self.amenities or []]
        for name in (
            "departure_time",
            "return_time",
            "trip_type",
            "available_seats",
            "price_per_seat",
            "rules",
            "description",
        ):
            if name in data:
                columns[name] = getattr(self, name)
        return columns


class TripCreate(_TripFields):
    driver: Optional[UUID] = Field(
        None, description="Driver offering the trip; defaults to the caller"
    )
    from_: RoutePlace = Field(..., alias="from")
    to: RoutePlace
    departure_date: date
    departure_time: str = Field(..., pattern=HHMM_PATTERN)
    return_date: Optional[date] = None
    return_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    trip_type: TripType = TripType.ONE_WAY
    vehicle: Vehicle
    driving_license: Optional[DrivingLicense] = None
    available_seats: int = Field(..., ge=1, le=7)
    price_per_seat: Money = Field(..., ge=1, decimal_places=2)
    pickup_points: List[Point] = Field(default_factory=list)
    drop_points: List[Point] = Field(default_factory=list)
    amenities: List[Amenity] = Field(default_factory=list)
    rules: List[str] = Field(default_factory=list)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("rules")
    @classmethod
    def validate_rules(cls, v):
        for rule in v:
            if len(rule) > 200:
                raise ValueError("Rule cannot exceed 200 characters")
        return v


class TripUpdate(_TripFields):
    from_: Optional[RoutePlace] = Field(None, alias="from")
    to: Optional[RoutePlace] = None
    departure_date: Optional[date] = None
    departure_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    return_date: Optional[date] = None
    return_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    trip_type: Optional[TripType] = None
    vehicle: Optional[Vehicle] = None
    driving_license: Optional[DrivingLicense] = None
    available_seats: Optional[int] = Field(None, ge=1, le=7)
    price_per_seat: Optional[Money] = Field(None, ge=1, decimal_places=2)
    pickup_points: Optional[List[Point]] = None
    drop_points: Optional[List[Point]] = None
    amenities: Optional[List[Amenity]] = None
    rules: Optional[List[str]] = None
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("rules")
    @classmethod
    def validate_rules(cls, v):
        for rule in v or []:
            if len(rule) > 200:
                raise ValueError("Rule cannot exceed 200 characters")
        return v


class PassengerEntry(CamelModel):
    """Per-passenger summary derived from the trip's bookings."""

    user: UUID
    seats_booked: int
    booking_date: Optional[datetime] = None
    status: str

    @classmethod
    def from_booking(cls, booking: Booking) -> "PassengerEntry":
        status = (
            "cancelled"
            if booking.booking_status == BookingStatus.CANCELLED
            else "confirmed"
        )
        return cls(
            user=booking.passenger_id,
            seats_booked=booking.seats_booked,
            booking_date=booking.created_at,
            status=status,
        )


class TripResponse(CamelModel):
    id: UUID
    driver: UUID
    from_: RoutePlace = Field(..., alias="from")
    to: RoutePlace
    departure_date: datetime
    departure_time: str
    return_date: Optional[datetime] = None
    return_time: Optional[str] = None
    trip_type: TripType
    vehicle: Vehicle
    driving_license: Optional[DrivingLicense] = None
    available_seats: int
    booked_seats: int
    remaining_seats: int
    price_per_seat: Money
    total_earnings: Money
    pickup_points: List[Dict[str, Any]] = Field(default_factory=list)
    drop_points: List[Dict[str, Any]] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    rules: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    status: TripStatus
    admin_remarks: Optional[str] = None
    is_active: bool
    passengers: List[PassengerEntry] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_trip(
        cls, trip: Trip, bookings: Optional[Iterable[Booking]] = None
    ) -> "TripResponse":
        driving_license = None
        if trip.license_number or trip.license_document_url:
            driving_license = DrivingLicense(
                number=trip.license_number, document_url=trip.license_document_url
            )
        return cls(
            id=trip.id,
            driver=trip.driver_id,
            from_=RoutePlace(
                city=trip.from_city,
                state=trip.from_state,
                latitude=trip.from_latitude,
                longitude=trip.from_longitude,
            ),
            to=RoutePlace(
                city=trip.to_city,
                state=trip.to_state,
                latitude=trip.to_latitude,
                longitude=trip.to_longitude,
            ),
            departure_date=trip.departure_date,
            departure_time=trip.departure_time,
            return_date=trip.return_date,
            return_time=trip.return_time,
            trip_type=trip.trip_type,
            vehicle=Vehicle(
                type=trip.vehicle_type,
                model=trip.vehicle_model,
                number=trip.vehicle_number,
                color=trip.vehicle_color,
                rc_url=trip.vehicle_rc_url,
                insurance_url=trip.vehicle_insurance_url,
            ),
            driving_license=driving_license,
            available_seats=trip.available_seats,
            booked_seats=trip.booked_seats,
            remaining_seats=trip.remaining_seats,
            price_per_seat=trip.price_per_seat,
            total_earnings=trip.total_earnings,
            pickup_points=trip.pickup_points or [],
            drop_points=trip.drop_points or [],
            amenities=trip.amenities or [],
            rules=trip.rules or [],
            description=trip.description,
            status=trip.status,
            admin_remarks=trip.admin_remarks,
            is_active=trip.is_active,
            passengers=[PassengerEntry.from_booking(b) for b in bookings or []],
            created_at=trip.created_at,
            updated_at=trip.updated_at,
        )


class TripEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: TripResponse


class TripListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[TripResponse]


class PopularRoute(CamelModel):
    from_: str = Field(..., alias="from")
    to: str
    trip_count: int
    average_price: Money
    min_price: Money


class PopularRoutesResponse(CamelModel):
    success: bool = True
    data: List[PopularRoute]


class TripBookRequest(CamelModel):
    """Trip-embedded booking body: ``{userId, seatsRequested}``."""

    user_id: UUID
    seats_requested: int = Field(..., ge=1, le=7)


class TripCancelBookingRequest(CamelModel):
    user_id: UUID
    reason: Optional[str] = Field(None, max_length=500)


class TripCancelRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)
