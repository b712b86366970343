"""
Trip-booking coordinator.

The only place that creates or cancels reservations. Every public operation
runs inside one unit of work: the trip's seat/earnings counters and the
booking row change together or not at all.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, List, Optional
from uuid import UUID

from ridemate.auth import Principal
from ridemate.config.settings import BaseAppSettings
from ridemate.core.errors import (
    DuplicateBookingError,
    ForbiddenError,
    InsufficientCapacityError,
    InvalidTransitionError,
    NotFoundError,
    RideMateError,
    ValidationFailure,
)
from ridemate.core.logging import get_logger, log_with_context
from ridemate.core.metrics import (
    booking_rejections_total,
    bookings_cancelled_total,
    bookings_created_total,
    otp_verifications_total,
    refunds_issued_total,
    seats_reserved_total,
)
from ridemate.domain import otp
from ridemate.domain.otp import OtpPolicy
from ridemate.domain.refund import CENTS, refund_amount
from ridemate.models import Booking, BookingStatus, PaymentMethod, Trip, TripStatus
from ridemate.services.booking_records import BookingRecordManager
from ridemate.storage.interfaces import UnitOfWorkIface

logger = get_logger(__name__)

CANCELLABLE_TRIP_STATUSES = (TripStatus.PENDING, TripStatus.APPROVED, TripStatus.ACTIVE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BookingResult:
    booking: Booking
    trip: Trip
    otp: str


@dataclass
class CancellationResult:
    booking: Booking
    trip: Trip
    refund_amount: Decimal


class TripBookingCoordinator:
    def __init__(
        self,
        uow: UnitOfWorkIface,
        otp_policy: Optional[OtpPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.otp_policy = otp_policy or OtpPolicy()
        self.clock = clock
        self.records = BookingRecordManager(uow.bookings)

    @classmethod
    def from_settings(
        cls,
        uow: UnitOfWorkIface,
        settings: BaseAppSettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> "TripBookingCoordinator":
        policy = OtpPolicy(
            max_attempts=settings.otp_max_attempts,
            resend_cooldown=timedelta(seconds=settings.otp_resend_cooldown_seconds),
            valid_after_departure=timedelta(
                hours=settings.otp_valid_hours_after_departure
            ),
        )
        return cls(uow, otp_policy=policy, clock=clock)

    async def book_trip(
        self,
        trip_id: UUID,
        passenger_id: UUID,
        seats: int,
        pickup_point: Optional[dict] = None,
        drop_point: Optional[dict] = None,
        passenger_details: Optional[List[dict]] = None,
        payment_method: PaymentMethod = PaymentMethod.ONLINE,
        special_requests: Optional[str] = None,
        channel: str = "booking",
    ) -> BookingResult:
        """
        Reserve ``seats`` on a trip and create the matching confirmed booking.

        Raises ValidationFailure, NotFoundError, DuplicateBookingError or
        InsufficientCapacityError; on any failure nothing is persisted.
        """
        log = log_with_context(
            logger, trip_id=str(trip_id), passenger_id=str(passenger_id)
        )

        try:
            async with self.uow:
                if seats is None or seats <= 0:
                    raise ValidationFailure.for_field(
                        "seatsBooked", "At least one seat must be booked"
                    )

                trip = await self.uow.trips.get_for_update(trip_id)
                if trip is None:
                    raise NotFoundError("Trip not found")
                if not trip.is_bookable:
                    raise ValidationFailure.for_field(
                        "trip", "Trip is not open for booking"
                    )

                existing = await self.uow.bookings.find_confirmed(trip.id, passenger_id)
                if existing is not None:
                    raise DuplicateBookingError()

                ledger = trip.ledger()
                if not ledger.has_capacity(seats):
                    raise InsufficientCapacityError(seats, ledger.remaining_seats)

                total = (Decimal(trip.price_per_seat) * seats).quantize(CENTS)

                # Conditional increment; fails if a concurrent booking took the seats
                if not await self.uow.trips.reserve_seats(trip, seats, total):
                    raise InsufficientCapacityError(seats, max(trip.remaining_seats, 0))

                now = self.clock()
                booking = await self.records.create_confirmed(
                    trip,
                    passenger_id,
                    seats,
                    total,
                    payment_method,
                    now,
                    pickup_point=pickup_point,
                    drop_point=drop_point,
                    passenger_details=passenger_details,
                    special_requests=special_requests,
                )
                code = otp.issue(booking, now)
                await self.uow.bookings.save(booking)

        except RideMateError as e:
            booking_rejections_total.labels(reason=e.code).inc()
            log.info("Booking rejected", seats=seats, reason=e.code)
            raise

        bookings_created_total.labels(channel=channel).inc()
        seats_reserved_total.inc(seats)
        log.info(
            "Booking confirmed",
            booking_id=str(booking.id),
            seats=seats,
            total_amount=str(total),
            booked_seats=trip.booked_seats,
        )
        return BookingResult(booking=booking, trip=trip, otp=code)

    async def book_seats(self, trip_id: UUID, user_id: UUID, seats: int) -> Trip:
        """Trip-embedded booking: cash payment, no pickup/drop details."""
        result = await self.book_trip(
            trip_id,
            user_id,
            seats,
            payment_method=PaymentMethod.CASH,
            channel="trip",
        )
        return result.trip

    async def cancel_booking(
        self,
        trip_id: UUID,
        passenger_id: UUID,
        cancelled_by: Optional[UUID] = None,
        reason: Optional[str] = None,
    ) -> CancellationResult:
        """Cancel the passenger's confirmed booking on a trip."""
        async with self.uow:
            trip = await self.uow.trips.get_for_update(trip_id)
            if trip is None:
                raise NotFoundError("Trip not found")

            booking = await self.uow.bookings.find_confirmed(trip.id, passenger_id)
            if booking is None:
                raise NotFoundError("Booking not found")

            refund = await self._cancel(
                trip, booking, cancelled_by or passenger_id, reason
            )

        self._record_cancellation(booking, refund, initiator="passenger")
        return CancellationResult(booking=booking, trip=trip, refund_amount=refund)

    async def cancel_booking_by_id(
        self,
        booking_id: UUID,
        principal: Principal,
        reason: Optional[str] = None,
    ) -> CancellationResult:
        """Cancel a booking by id. Allowed for its passenger, the driver or an admin."""
        async with self.uow:
            booking = await self.uow.bookings.get(booking_id)
            if booking is None:
                raise NotFoundError("Booking not found")

            trip = await self.uow.trips.get_for_update(booking.trip_id)
            if trip is None:
                raise NotFoundError("Trip not found")

            is_driver = trip.is_owned_by(principal.id)
            if not (
                principal.is_admin or is_driver or booking.passenger_id == principal.id
            ):
                raise ForbiddenError("You cannot cancel this booking")
            if not booking.is_confirmed:
                raise InvalidTransitionError(
                    f"Only confirmed bookings can be cancelled (status is "
                    f"{booking.booking_status.value})"
                )

            refund = await self._cancel(trip, booking, principal.id, reason)

        if principal.is_admin:
            initiator = "admin"
        elif is_driver and booking.passenger_id != principal.id:
            initiator = "driver"
        else:
            initiator = "passenger"
        self._record_cancellation(booking, refund, initiator=initiator)
        return CancellationResult(booking=booking, trip=trip, refund_amount=refund)

    async def cancel_trip(
        self,
        trip_id: UUID,
        principal: Principal,
        reason: Optional[str] = None,
    ) -> Trip:
        """
        Cancel a whole trip. Every confirmed booking is cancelled with a full
        refund and its seats are released.
        """
        async with self.uow:
            trip = await self.uow.trips.get_for_update(trip_id)
            if trip is None:
                raise NotFoundError("Trip not found")
            if not (principal.is_admin or trip.is_owned_by(principal.id)):
                raise ForbiddenError("Only the driver or an admin can cancel this trip")
            if trip.status not in CANCELLABLE_TRIP_STATUSES:
                raise InvalidTransitionError(
                    f"Cannot cancel a trip with status {trip.status.value}"
                )

            bookings = await self.uow.bookings.list_for_trip(
                trip.id, status=BookingStatus.CONFIRMED
            )
            reason = reason or "Trip cancelled"
            for booking in bookings:
                await self._cancel(trip, booking, principal.id, reason, full_refund=True)

            trip.status = TripStatus.CANCELLED
            trip.updated_at = self.clock()
            await self.uow.trips.save(trip)

        for booking in bookings:
            self._record_cancellation(booking, booking.refund_amount, initiator="trip")
        logger.info(
            "Trip cancelled",
            trip_id=str(trip.id),
            cancelled_bookings=len(bookings),
            cancelled_by=str(principal.id),
        )
        return trip

    async def verify_pickup(
        self, booking_id: UUID, code: str, principal: Principal
    ) -> bool:
        """Check a passenger's pickup code. Only the trip's driver or an admin may."""
        async with self.uow:
            booking = await self.uow.bookings.get(booking_id)
            if booking is None:
                raise NotFoundError("Booking not found")

            trip = await self.uow.trips.get(booking.trip_id)
            if trip is None:
                raise NotFoundError("Trip not found")
            if not (principal.is_admin or trip.is_owned_by(principal.id)):
                raise ForbiddenError("Only the trip's driver can verify pickup")

            accepted = otp.verify(
                booking,
                code,
                self.clock(),
                self.otp_policy.expires_at(trip.departs_at),
                self.otp_policy,
            )
            # Failed attempts are persisted too
            await self.uow.bookings.save(booking)

        otp_verifications_total.labels(
            result="accepted" if accepted else "rejected"
        ).inc()
        logger.info(
            "Pickup code checked",
            booking_id=str(booking.id),
            accepted=accepted,
            attempts=booking.otp_attempts,
        )
        return accepted

    async def regenerate_otp(self, booking_id: UUID, principal: Principal) -> str:
        """Issue a fresh pickup code to the passenger, honouring the resend cooldown."""
        async with self.uow:
            booking = await self.uow.bookings.get(booking_id)
            if booking is None:
                raise NotFoundError("Booking not found")
            principal.ensure_self_or_admin(booking.passenger_id)

            if not booking.is_confirmed:
                raise InvalidTransitionError(
                    "Pickup codes exist only for confirmed bookings"
                )
            if booking.otp_verified:
                raise InvalidTransitionError("Pickup has already been verified")

            now = self.clock()
            if not otp.can_resend(booking, now, self.otp_policy):
                raise ValidationFailure.for_field(
                    "otp", "Please wait before requesting a new code"
                )

            code = otp.issue(booking, now)
            booking.updated_at = now
            await self.uow.bookings.save(booking)

        logger.info("Pickup code regenerated", booking_id=str(booking.id))
        return code

    async def _cancel(
        self,
        trip: Trip,
        booking: Booking,
        cancelled_by: UUID,
        reason: Optional[str],
        full_refund: bool = False,
    ) -> Decimal:
        now = self.clock()
        if full_refund:
            refund = Decimal(booking.total_amount).quantize(CENTS)
        else:
            refund = refund_amount(booking.total_amount, trip.departs_at, now)

        if not await self.records.mark_cancelled(
            booking, cancelled_by, reason, refund, now
        ):
            # A concurrent cancellation got there first
            raise NotFoundError("Booking not found")

        await self.uow.trips.release_seats(
            trip, booking.seats_booked, Decimal(booking.total_amount)
        )
        return refund

    def _record_cancellation(
        self, booking: Booking, refund: Decimal, initiator: str
    ) -> None:
        bookings_cancelled_total.labels(initiator=initiator).inc()
        if refund > 0:
            refunds_issued_total.inc()
        logger.info(
            "Booking cancelled",
            booking_id=str(booking.id),
            trip_id=str(booking.trip_id),
            seats=booking.seats_booked,
            refund_amount=str(refund),
            initiator=initiator,
        )
