"""Booking record lifecycle: create, cancel and complete Booking rows."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from ridemate.models import (
    Booking,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    Trip,
)
from ridemate.storage.interfaces import BookingRepoIface


def initial_payment_status(payment_method: PaymentMethod) -> PaymentStatus:
    """Cash is collected at pickup; every other method is settled up front."""
    if payment_method == PaymentMethod.CASH:
        return PaymentStatus.PENDING
    return PaymentStatus.PAID


class BookingRecordManager:
    """
    Creates and mutates Booking entities.

    Knows nothing about seat capacity; the coordinator calls it inside the
    same unit of work that moves the trip counters.
    """

    def __init__(self, bookings: BookingRepoIface):
        self.bookings = bookings

    async def create_confirmed(
        self,
        trip: Trip,
        passenger_id: UUID,
        seats: int,
        total_amount: Decimal,
        payment_method: PaymentMethod,
        now: datetime,
        pickup_point: Optional[dict] = None,
        drop_point: Optional[dict] = None,
        passenger_details: Optional[List[dict]] = None,
        special_requests: Optional[str] = None,
    ) -> Booking:
        booking = Booking(
            trip_id=trip.id,
            passenger_id=passenger_id,
            seats_booked=seats,
            total_amount=total_amount,
            pickup_point=pickup_point,
            drop_point=drop_point,
            passenger_details=passenger_details or [],
            booking_status=BookingStatus.CONFIRMED,
            payment_status=initial_payment_status(payment_method),
            payment_method=payment_method,
            special_requests=special_requests,
            refund_amount=Decimal("0"),
            otp_verified=False,
            otp_attempts=0,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        return await self.bookings.add(booking)

    async def mark_cancelled(
        self,
        booking: Booking,
        cancelled_by: Optional[UUID],
        reason: Optional[str],
        refund: Decimal,
        now: datetime,
    ) -> bool:
        """
        Move a confirmed booking to cancelled and record the refund.

        Returns False when the booking was no longer confirmed.
        """
        if not await self.bookings.mark_cancelled(booking):
            return False

        booking.cancelled_at = now
        booking.cancelled_by = cancelled_by
        booking.cancellation_reason = reason
        booking.refund_amount = refund
        if refund > 0:
            booking.payment_status = PaymentStatus.REFUNDED
        booking.updated_at = now

        await self.bookings.save(booking)
        return True

    async def mark_completed(self, booking: Booking, now: datetime) -> Booking:
        booking.booking_status = BookingStatus.COMPLETED
        booking.completed_at = now
        booking.updated_at = now
        return await self.bookings.save(booking)
