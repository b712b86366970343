"""SQLAlchemy implementation of the trip/booking repositories."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ridemate.core.errors import DuplicateBookingError, PersistenceFailure
from ridemate.core.logging import get_logger
from ridemate.models import (
    BOOKABLE_TRIP_STATUSES,
    Booking,
    BookingStatus,
    PaymentStatus,
    Trip,
    TripStatus,
)
from ridemate.storage.interfaces import (
    BookingRepoIface,
    TripRepoIface,
    UnitOfWorkIface,
)

logger = get_logger(__name__)

DUPLICATE_BOOKING_INDEX = "uq_bookings_confirmed_trip_passenger"

# Only the counters are reloaded after a Core UPDATE so pending ORM edits survive
COUNTER_FIELDS = ["booked_seats", "total_earnings"]


class SqlTripRepo(TripRepoIface):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, trip_id: UUID) -> Optional[Trip]:
        result = await self.session.execute(select(Trip).where(Trip.id == trip_id))
        return result.scalar_one_or_none()

    async def get_for_update(self, trip_id: UUID) -> Optional[Trip]:
        result = await self.session.execute(
            select(Trip)
            .where(Trip.id == trip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def add(self, trip: Trip) -> Trip:
        self.session.add(trip)
        await self.session.flush()
        await self.session.refresh(trip)
        return trip

    async def save(self, trip: Trip) -> Trip:
        await self.session.flush()
        return trip

    async def delete(self, trip: Trip) -> None:
        await self.session.delete(trip)
        await self.session.flush()

    async def search(
        self,
        from_city: str,
        to_city: str,
        seats: int,
        departure_from: datetime,
        departure_to: Optional[datetime] = None,
        limit: int = 50,
    ) -> List[Trip]:
        query = select(Trip).where(
            func.lower(Trip.from_city) == from_city.strip().lower(),
            func.lower(Trip.to_city) == to_city.strip().lower(),
            Trip.is_active.is_(True),
            Trip.status.in_(BOOKABLE_TRIP_STATUSES),
            Trip.available_seats - Trip.booked_seats >= seats,
            Trip.departure_date >= departure_from,
        )
        if departure_to is not None:
            query = query.where(Trip.departure_date < departure_to)

        query = query.order_by(Trip.departure_date, Trip.departure_time).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_by_driver(self, driver_id: UUID) -> List[Trip]:
        result = await self.session.execute(
            select(Trip)
            .where(Trip.driver_id == driver_id)
            .order_by(Trip.created_at.desc())
        )
        return list(result.scalars().all())

    async def popular_routes(self, limit: int = 8) -> List[dict]:
        trip_count = func.count(Trip.id).label("trip_count")
        result = await self.session.execute(
            select(
                Trip.from_city,
                Trip.to_city,
                trip_count,
                func.round(func.avg(Trip.price_per_seat)).label("average_price"),
                func.min(Trip.price_per_seat).label("min_price"),
            )
            .where(Trip.status == TripStatus.ACTIVE, Trip.is_active.is_(True))
            .group_by(Trip.from_city, Trip.to_city)
            .order_by(trip_count.desc())
            .limit(limit)
        )
        return [
            {
                "from_city": row.from_city,
                "to_city": row.to_city,
                "trip_count": row.trip_count,
                "average_price": row.average_price,
                "min_price": row.min_price,
            }
            for row in result
        ]

    def _review_filters(self, query, status: Optional[TripStatus], search: Optional[str]):
        if status is not None:
            query = query.where(Trip.status == status)
        if search:
            query = query.where(
                or_(
                    Trip.from_city.ilike(f"%{search}%"),
                    Trip.to_city.ilike(f"%{search}%"),
                )
            )
        return query

    async def list_trips(
        self,
        status: Optional[TripStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Trip]:
        query = self._review_filters(select(Trip), status, search)
        query = query.order_by(Trip.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_trips(
        self, status: Optional[TripStatus] = None, search: Optional[str] = None
    ) -> int:
        query = self._review_filters(select(func.count(Trip.id)), status, search)
        result = await self.session.execute(query)
        return result.scalar()

    async def reserve_seats(self, trip: Trip, seats: int, amount: Decimal) -> bool:
        # Row lock taken by the UPDATE serializes concurrent reservations;
        # status and capacity are re-checked against the committed row.
        result = await self.session.execute(
            update(Trip)
            .where(
                Trip.id == trip.id,
                Trip.status.in_(BOOKABLE_TRIP_STATUSES),
                Trip.is_active.is_(True),
                Trip.available_seats - Trip.booked_seats >= seats,
            )
            .values(
                booked_seats=Trip.booked_seats + seats,
                total_earnings=Trip.total_earnings + amount,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        await self.session.refresh(trip, COUNTER_FIELDS)
        return True

    async def release_seats(self, trip: Trip, seats: int, amount: Decimal) -> None:
        await self.session.execute(
            update(Trip)
            .where(Trip.id == trip.id)
            .values(
                booked_seats=func.greatest(Trip.booked_seats - seats, 0),
                total_earnings=func.greatest(Trip.total_earnings - amount, 0),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(trip, COUNTER_FIELDS)


class SqlBookingRepo(BookingRepoIface):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, booking_id: UUID) -> Optional[Booking]:
        result = await self.session.execute(
            select(Booking).where(Booking.id == booking_id)
        )
        return result.scalar_one_or_none()

    async def add(self, booking: Booking) -> Booking:
        self.session.add(booking)
        try:
            await self.session.flush()
        except IntegrityError as e:
            if DUPLICATE_BOOKING_INDEX in str(e.orig):
                raise DuplicateBookingError() from e
            raise
        await self.session.refresh(booking)
        return booking

    async def save(self, booking: Booking) -> Booking:
        await self.session.flush()
        return booking

    async def find_confirmed(self, trip_id: UUID, passenger_id: UUID) -> Optional[Booking]:
        result = await self.session.execute(
            select(Booking).where(
                Booking.trip_id == trip_id,
                Booking.passenger_id == passenger_id,
                Booking.booking_status == BookingStatus.CONFIRMED,
            )
        )
        return result.scalars().first()

    async def list_for_trip(
        self, trip_id: UUID, status: Optional[BookingStatus] = None
    ) -> List[Booking]:
        query = select(Booking).where(Booking.trip_id == trip_id)
        if status is not None:
            query = query.where(Booking.booking_status == status)
        result = await self.session.execute(query.order_by(Booking.created_at))
        return list(result.scalars().all())

    async def list_for_passenger(self, passenger_id: UUID) -> List[Booking]:
        result = await self.session.execute(
            select(Booking)
            .where(Booking.passenger_id == passenger_id)
            .order_by(Booking.created_at.desc())
        )
        return list(result.scalars().all())

    def _review_filters(
        self,
        query,
        status: Optional[BookingStatus],
        payment_status: Optional[PaymentStatus],
    ):
        if status is not None:
            query = query.where(Booking.booking_status == status)
        if payment_status is not None:
            query = query.where(Booking.payment_status == payment_status)
        return query

    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> List[Booking]:
        query = self._review_filters(select(Booking), status, payment_status)
        query = query.order_by(Booking.created_at.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_bookings(
        self,
        status: Optional[BookingStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
    ) -> int:
        query = self._review_filters(
            select(func.count(Booking.id)), status, payment_status
        )
        result = await self.session.execute(query)
        return result.scalar()

    async def mark_cancelled(self, booking: Booking) -> bool:
        result = await self.session.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.booking_status == BookingStatus.CONFIRMED,
            )
            .values(booking_status=BookingStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        await self.session.refresh(booking, ["booking_status"])
        return True


class SqlUnitOfWork(UnitOfWorkIface):
    """Unit of work bound to one request-scoped ``AsyncSession``."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.trips = SqlTripRepo(session)
        self.bookings = SqlBookingRepo(session)

    async def begin(self) -> None:
        # AsyncSession begins lazily on first statement
        pass

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Commit failed", error=str(e), error_type=type(e).__name__)
            raise PersistenceFailure() from e

    async def rollback(self, exc: Optional[BaseException] = None) -> None:
        await self.session.rollback()
        if isinstance(exc, SQLAlchemyError):
            logger.error(
                "Transaction rolled back after database error",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise PersistenceFailure() from exc
