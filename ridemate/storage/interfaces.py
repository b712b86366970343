"""Repository interfaces for dependency injection."""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from ridemate.models import Booking, BookingStatus, PaymentStatus, Trip, TripStatus


class TripRepoIface(ABC):
    """Interface for trips repository."""

    @abstractmethod
    async def get(self, trip_id: UUID) -> Optional[Trip]:
        """Get trip by ID."""
        pass

    @abstractmethod
    async def get_for_update(self, trip_id: UUID) -> Optional[Trip]:
        """
        Get trip by ID and hold its row lock until the transaction ends.

        Every operation that changes a trip's status, price, capacity or
        bookings takes this lock first, so they run one at a time per trip.
        """
        pass

    @abstractmethod
    async def add(self, trip: Trip) -> Trip:
        """Persist a new trip."""
        pass

    @abstractmethod
    async def save(self, trip: Trip) -> Trip:
        """Write field changes of an already loaded trip."""
        pass

    @abstractmethod
    async def delete(self, trip: Trip) -> None:
        """Remove a trip."""
        pass

    @abstractmethod
    async def search(
        self,
        from_city: str,
        to_city: str,
        seats: int,
        departure_from: datetime,
        departure_to: Optional[datetime] = None,
        limit: int = 50,
    ) -> List[Trip]:
        """Bookable trips on a route with at least ``seats`` remaining."""
        pass

    @abstractmethod
    async def list_by_driver(self, driver_id: UUID) -> List[Trip]:
        """List trips offered by a driver, newest first."""
        pass

    @abstractmethod
    async def popular_routes(self, limit: int = 8) -> List[dict]:
        """Active routes by trip count: from, to, trip_count, average_price, min_price."""
        pass

    @abstractmethod
    async def list_trips(
        self,
        status: Optional[TripStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Trip]:
        """List trips for review, newest first."""
        pass

    @abstractmethod
    async def count_trips(
        self, status: Optional[TripStatus] = None, search: Optional[str] = None
    ) -> int:
        """Count trips matching the review filters."""
        pass

    @abstractmethod
    async def reserve_seats(self, trip: Trip, seats: int, amount: Decimal) -> bool:
        """
        Atomically add ``seats`` and ``amount`` to the trip's counters, only if
        the trip is still open for booking and the resulting booked count stays
        within capacity. Returns False when the condition did not hold.
        """
        pass

    @abstractmethod
    async def release_seats(self, trip: Trip, seats: int, amount: Decimal) -> None:
        """Atomically subtract ``seats`` and ``amount``, clamped at zero."""
        pass


class BookingRepoIface(ABC):
    """Interface for bookings repository."""

    @abstractmethod
    async def get(self, booking_id: UUID) -> Optional[Booking]:
        """Get booking by ID."""
        pass

    @abstractmethod
    async def add(self, booking: Booking) -> Booking:
        """Persist a new booking. Raises DuplicateBookingError on a second confirmed booking."""
        pass

    @abstractmethod
    async def save(self, booking: Booking) -> Booking:
        """Write field changes of an already loaded booking."""
        pass

    @abstractmethod
    async def find_confirmed(self, trip_id: UUID, passenger_id: UUID) -> Optional[Booking]:
        """Get the passenger's confirmed booking on a trip, if any."""
        pass

    @abstractmethod
    async def list_for_trip(
        self, trip_id: UUID, status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        """List a trip's bookings in booking order."""
        pass

    @abstractmethod
    async def list_for_passenger(self, passenger_id: UUID) -> List[Booking]:
        """List a passenger's bookings, newest first."""
        pass

    @abstractmethod
    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Booking]:
        """List bookings for review, newest first."""
        pass

    @abstractmethod
    async def count_bookings(
        self,
        status: Optional[BookingStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
    ) -> int:
        """Count bookings matching the review filters."""
        pass

    @abstractmethod
    async def mark_cancelled(self, booking: Booking) -> bool:
        """
        Atomically move a booking from confirmed to cancelled. Returns False
        if it was no longer confirmed (a concurrent cancellation won).
        """
        pass


class UnitOfWorkIface(ABC):
    """
    Transaction boundary over trips and bookings.

    ``async with uow:`` commits on normal exit and rolls back every change
    made through ``uow.trips`` / ``uow.bookings`` when the block raises.
    """

    trips: TripRepoIface
    bookings: BookingRepoIface

    async def __aenter__(self) -> "UnitOfWorkIface":
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.rollback(exc)
        else:
            await self.commit()

    @abstractmethod
    async def begin(self) -> None:
        """Start a transaction."""
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Commit the transaction."""
        pass

    @abstractmethod
    async def rollback(self, exc: Optional[BaseException] = None) -> None:
        """Undo the transaction. May raise a translated error for ``exc``."""
        pass
