"""Booking model: one passenger's reservation of seats on a trip."""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID

from .base import BaseModel, enum_type


class BookingStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(enum.Enum):
    CASH = "cash"
    ONLINE = "online"
    UPI = "upi"
    CARD = "card"


class Booking(BaseModel):
    """Authoritative reservation record. Never physically deleted."""

    __tablename__ = "bookings"

    __table_args__ = (
        # At most one live reservation per passenger per trip
        Index(
            "uq_bookings_confirmed_trip_passenger",
            "trip_id",
            "passenger_id",
            unique=True,
            postgresql_where=text("booking_status = 'confirmed'"),
        ),
        Index("ix_bookings_trip_status", "trip_id", "booking_status"),
    )

    trip_id = Column(
        UUID(as_uuid=True),
        ForeignKey("trips.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    passenger_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    seats_booked = Column(Integer, nullable=False)
    total_amount = Column(
        Numeric(12, 2),
        nullable=False,
        comment="seats_booked * price_per_seat at booking time",
    )

    pickup_point = Column(JSONB, nullable=True)
    drop_point = Column(JSONB, nullable=True)
    passenger_details = Column(JSONB, nullable=False, default=list)

    booking_status = Column(
        enum_type(BookingStatus, "booking_status"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    payment_status = Column(
        enum_type(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    payment_method = Column(
        enum_type(PaymentMethod, "payment_method"),
        nullable=False,
        default=PaymentMethod.ONLINE,
    )
    transaction_id = Column(String(100), nullable=True)
    special_requests = Column(String(300), nullable=True)

    # Cancellation
    cancellation_reason = Column(String(500), nullable=True)
    cancelled_by = Column(UUID(as_uuid=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    refund_amount = Column(Numeric(12, 2), nullable=False, default=0)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Pickup verification
    otp_code = Column(String(4), nullable=True)
    otp_generated_at = Column(DateTime(timezone=True), nullable=True)
    otp_verified = Column(Boolean, nullable=False, default=False)
    otp_verified_at = Column(DateTime(timezone=True), nullable=True)
    otp_attempts = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def is_confirmed(self) -> bool:
        return self.booking_status == BookingStatus.CONFIRMED

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, trip_id={self.trip_id}, passenger_id={self.passenger_id}, "
            f"seats={self.seats_booked}, status={self.booking_status.value})>"
        )
