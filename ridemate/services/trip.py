from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from ridemate.auth import Principal
from ridemate.config.settings import BaseAppSettings
from ridemate.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailure,
)
from ridemate.core.logging import get_logger
from ridemate.core.metrics import trip_reviews_total
from ridemate.models import (
    Booking,
    BookingStatus,
    PaymentStatus,
    Trip,
    TripStatus,
)
from ridemate.schemas.trip import TripCreate, TripUpdate, day_start
from ridemate.services.booking_coordinator import TripBookingCoordinator
from ridemate.services.booking_records import BookingRecordManager
from ridemate.storage.interfaces import UnitOfWorkIface

logger = get_logger(__name__)


@dataclass
class TripDetails:
    """A trip together with its bookings, oldest first."""

    trip: Trip
    bookings: List[Booking] = field(default_factory=list)


class TripService:
    def __init__(
        self,
        uow: UnitOfWorkIface,
        settings: BaseAppSettings,
        coordinator: Optional[TripBookingCoordinator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.uow = uow
        self.settings = settings
        self.coordinator = coordinator or TripBookingCoordinator.from_settings(
            uow, settings
        )
        self.clock = clock or self.coordinator.clock

    async def create_trip(self, data: TripCreate, principal: Principal) -> Trip:
        driver_id = data.driver or principal.id
        principal.ensure_self_or_admin(driver_id)

        now = self.clock()
        if day_start(data.departure_date) < day_start(now.date()):
            raise ValidationFailure.for_field(
                "departureDate", "Departure date cannot be in the past"
            )

        trip = Trip(
            driver_id=driver_id,
            booked_seats=0,
            total_earnings=Decimal("0"),
            status=TripStatus.PENDING,
            is_active=True,
            created_at=now,
            updated_at=now,
            **data.to_columns(),
        )
        async with self.uow:
            trip = await self.uow.trips.add(trip)

        logger.info(
            "Trip created",
            trip_id=str(trip.id),
            driver_id=str(driver_id),
            route=f"{trip.from_city}->{trip.to_city}",
        )
        return trip

    async def get_trip(self, trip_id: UUID) -> TripDetails:
        async with self.uow:
            trip = await self._get_or_404(trip_id)
            bookings = await self.uow.bookings.list_for_trip(trip.id)
        return TripDetails(trip=trip, bookings=bookings)

    async def search_trips(
        self,
        from_city: str,
        to_city: str,
        on_date: Optional[date] = None,
        seats: int = 1,
    ) -> List[Trip]:
        details = []
        if not from_city or not from_city.strip():
            details.append({"field": "from", "message": "Departure city is required"})
        if not to_city or not to_city.strip():
            details.append({"field": "to", "message": "Destination city is required"})
        if seats < 1:
            details.append({"field": "seats", "message": "Seats must be at least 1"})
        if details:
            raise ValidationFailure("Both from and to cities are required", details)

        if on_date is not None:
            departure_from = day_start(on_date)
            departure_to = departure_from + timedelta(days=1)
        else:
            # Trips are stored per calendar day, so today's trips still count
            departure_from = day_start(self.clock().date())
            departure_to = None

        async with self.uow:
            trips = await self.uow.trips.search(
                from_city,
                to_city,
                seats,
                departure_from,
                departure_to,
                limit=self.settings.search_result_limit,
            )
        return trips

    async def popular_routes(self, limit: int = 8) -> List[dict]:
        async with self.uow:
            return await self.uow.trips.popular_routes(limit)

    async def list_driver_trips(self, driver_id: UUID) -> List[TripDetails]:
        async with self.uow:
            trips = await self.uow.trips.list_by_driver(driver_id)
            return [
                TripDetails(trip, await self.uow.bookings.list_for_trip(trip.id))
                for trip in trips
            ]

    async def update_trip(
        self, trip_id: UUID, data: TripUpdate, principal: Principal
    ) -> TripDetails:
        columns = data.to_columns(only_set=True)

        async with self.uow:
            trip = await self._get_or_404(trip_id, for_update=True)
            self._ensure_can_manage(trip, principal)

            if trip.status in (
                TripStatus.COMPLETED,
                TripStatus.CANCELLED,
                TripStatus.REJECTED,
            ):
                raise InvalidTransitionError(
                    f"Cannot edit a trip with status {trip.status.value}"
                )

            errors = []
            new_capacity = columns.get("available_seats")
            if new_capacity is not None and new_capacity < trip.booked_seats:
                errors.append(
                    {
                        "field": "availableSeats",
                        "message": f"Cannot be lower than the {trip.booked_seats} seats already booked",
                    }
                )
            new_price = columns.get("price_per_seat")
            if (
                new_price is not None
                and Decimal(new_price) != Decimal(trip.price_per_seat)
                and trip.booked_seats > 0
            ):
                errors.append(
                    {
                        "field": "pricePerSeat",
                        "message": "Price cannot change while seats are booked",
                    }
                )
            if errors:
                raise ValidationFailure("Validation failed", errors)

            for name, value in columns.items():
                setattr(trip, name, value)
            trip.updated_at = self.clock()
            await self.uow.trips.save(trip)

            bookings = await self.uow.bookings.list_for_trip(trip.id)

        logger.info("Trip updated", trip_id=str(trip.id), fields=sorted(columns))
        return TripDetails(trip=trip, bookings=bookings)

    async def delete_trip(self, trip_id: UUID, principal: Principal) -> bool:
        """
        Remove a trip. Refused while confirmed bookings exist. Trips with
        booking history are deactivated instead of removed.

        Returns True when the row was removed, False when it was deactivated.
        """
        async with self.uow:
            trip = await self._get_or_404(trip_id, for_update=True)
            self._ensure_can_manage(trip, principal)

            bookings = await self.uow.bookings.list_for_trip(trip.id)
            if any(b.is_confirmed for b in bookings):
                raise InvalidTransitionError(
                    "Trip has confirmed bookings; cancel the trip instead"
                )

            if bookings:
                trip.is_active = False
                trip.updated_at = self.clock()
                await self.uow.trips.save(trip)
                removed = False
            else:
                await self.uow.trips.delete(trip)
                removed = True

        logger.info("Trip deleted", trip_id=str(trip_id), removed=removed)
        return removed

    async def approve_trip(
        self, trip_id: UUID, remarks: Optional[str] = None
    ) -> Trip:
        return await self._review(trip_id, TripStatus.ACTIVE, remarks, "approved")

    async def reject_trip(self, trip_id: UUID, remarks: str) -> Trip:
        if not remarks or not remarks.strip():
            raise ValidationFailure.for_field(
                "adminRemarks", "Admin remarks are required"
            )
        return await self._review(trip_id, TripStatus.REJECTED, remarks, "rejected")

    async def complete_trip(self, trip_id: UUID, principal: Principal) -> TripDetails:
        """Finish an active trip; its confirmed bookings become completed."""
        records = BookingRecordManager(self.uow.bookings)

        async with self.uow:
            trip = await self._get_or_404(trip_id, for_update=True)
            self._ensure_can_manage(trip, principal)
            if trip.status != TripStatus.ACTIVE:
                raise InvalidTransitionError(
                    f"Only active trips can be completed (status is {trip.status.value})"
                )

            now = self.clock()
            bookings = await self.uow.bookings.list_for_trip(trip.id)
            for booking in bookings:
                if booking.is_confirmed:
                    await records.mark_completed(booking, now)

            trip.status = TripStatus.COMPLETED
            trip.updated_at = now
            await self.uow.trips.save(trip)

        logger.info("Trip completed", trip_id=str(trip.id))
        return TripDetails(trip=trip, bookings=bookings)

    async def cancel_trip(
        self, trip_id: UUID, principal: Principal, reason: Optional[str] = None
    ) -> TripDetails:
        await self.coordinator.cancel_trip(trip_id, principal, reason)
        return await self.get_trip(trip_id)

    async def list_trips(
        self,
        status: Optional[TripStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Trip], int]:
        skip = (page - 1) * limit
        async with self.uow:
            trips = await self.uow.trips.list_trips(status, search, skip, limit)
            total = await self.uow.trips.count_trips(status, search)
        return trips, total

    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Booking], int]:
        skip = (page - 1) * limit
        async with self.uow:
            bookings = await self.uow.bookings.list_bookings(
                status, payment_status, skip, limit
            )
            total = await self.uow.bookings.count_bookings(status, payment_status)
        return bookings, total

    async def get_booking(
        self, booking_id: UUID, principal: Optional[Principal] = None
    ) -> Booking:
        """Get a booking; non-admins only see their own or their trip's bookings."""
        async with self.uow:
            booking = await self.uow.bookings.get(booking_id)
            if booking is None:
                raise NotFoundError("Booking not found")
            if principal is not None and not principal.is_admin:
                if booking.passenger_id != principal.id:
                    trip = await self.uow.trips.get(booking.trip_id)
                    if trip is None or not trip.is_owned_by(principal.id):
                        raise ForbiddenError("You cannot view this booking")
        return booking

    async def list_passenger_bookings(self, passenger_id: UUID) -> List[Booking]:
        async with self.uow:
            return await self.uow.bookings.list_for_passenger(passenger_id)

    async def _review(
        self,
        trip_id: UUID,
        target: TripStatus,
        remarks: Optional[str],
        decision: str,
    ) -> Trip:
        async with self.uow:
            trip = await self._get_or_404(trip_id, for_update=True)
            if trip.status != TripStatus.PENDING:
                raise InvalidTransitionError(
                    f"Only pending trips can be {decision}"
                )
            trip.status = target
            if remarks is not None:
                trip.admin_remarks = remarks
            trip.updated_at = self.clock()
            await self.uow.trips.save(trip)

        trip_reviews_total.labels(decision=decision).inc()
        logger.info("Trip reviewed", trip_id=str(trip.id), decision=decision)
        return trip

    async def _get_or_404(self, trip_id: UUID, for_update: bool = False) -> Trip:
        if for_update:
            trip = await self.uow.trips.get_for_update(trip_id)
        else:
            trip = await self.uow.trips.get(trip_id)
        if trip is None:
            raise NotFoundError("Trip not found")
        return trip

    def _ensure_can_manage(self, trip: Trip, principal: Principal) -> None:
        if not (principal.is_admin or trip.is_owned_by(principal.id)):
            raise ForbiddenError("Only the driver or an admin can manage this trip")
