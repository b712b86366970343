from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, Field, model_validator

from ridemate.models import BookingStatus, PaymentMethod, PaymentStatus

from .common import CamelModel, Money, Point


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class BookingPoint(Point):
    time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class PassengerDetail(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=1, le=120)
    gender: Gender
    phone: Optional[str] = Field(None, pattern=r"^\d{10}$")


class BookingCreate(CamelModel):
    trip: UUID
    passenger: UUID
    seats_booked: int = Field(..., ge=1, le=7)
    pickup_point: BookingPoint
    drop_point: BookingPoint
    passenger_details: List[PassengerDetail] = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.ONLINE
    special_requests: Optional[str] = Field(None, max_length=300)

    @model_validator(mode="after")
    def one_detail_per_seat(self):
        if len(self.passenger_details) != self.seats_booked:
            raise ValueError("passengerDetails must contain one entry per booked seat")
        return self


class BookingCancelRequest(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)


class VerifyOtpRequest(CamelModel):
    code: str = Field(..., pattern=r"^\d{4}$")


class BookingResponse(CamelModel):
    """Booking as returned by the API. The pickup code is never included."""

    id: UUID
    trip: UUID = Field(..., validation_alias=AliasChoices("trip", "trip_id"))
    passenger: UUID = Field(
        ..., validation_alias=AliasChoices("passenger", "passenger_id")
    )
    seats_booked: int
    total_amount: Money
    pickup_point: Optional[dict] = None
    drop_point: Optional[dict] = None
    passenger_details: List[dict] = Field(default_factory=list)
    booking_status: BookingStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[UUID] = None
    cancelled_at: Optional[datetime] = None
    refund_amount: Money = 0
    completed_at: Optional[datetime] = None
    otp_generated_at: Optional[datetime] = None
    otp_verified: bool = False
    otp_verified_at: Optional[datetime] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingCreatedResponse(CamelModel):
    success: bool = True
    message: str = "Ride booked successfully"
    data: BookingResponse
    otp: str


class BookingEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: BookingResponse


class BookingListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[BookingResponse]


class OtpVerificationResponse(CamelModel):
    success: bool = True
    verified: bool
    message: str


class OtpIssuedResponse(CamelModel):
    success: bool = True
    message: str = "Pickup code regenerated"
    otp: str
