"""In-memory fake repositories and unit of work for unit tests.

``InMemoryStore`` plays the database: it holds committed rows as plain dicts.
Each ``FakeUnitOfWork`` is one session over it. Loaded entities are private
copies tracked in an identity map, and commit writes back only the attributes
that changed, so concurrent units of work do not overwrite each other's
counter updates. Conditional updates (seat reservation, cancellation) apply
to the shared rows immediately and are undone from a journal on rollback.
Trip row locks are per-trip ``asyncio.Lock``s held until commit or rollback.
"""

import asyncio
import copy
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from ridemate.core.errors import DuplicateBookingError, PersistenceFailure
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

MODELS = {"trips": Trip, "bookings": Booking}
COUNTER_FIELDS = ("booked_seats", "total_earnings")


def _columns(model) -> List[str]:
    return [column.key for column in model.__table__.columns]


def _row_of(obj) -> Dict[str, Any]:
    return {name: copy.deepcopy(getattr(obj, name)) for name in _columns(type(obj))}


def _fill_defaults(obj) -> None:
    now = datetime.now(timezone.utc)
    if obj.id is None:
        obj.id = uuid.uuid4()
    if obj.created_at is None:
        obj.created_at = now
    if obj.updated_at is None:
        obj.updated_at = now


class InMemoryStore:
    """Committed state shared by every fake unit of work."""

    def __init__(self):
        self.tables: Dict[str, Dict[uuid.UUID, dict]] = {"trips": {}, "bookings": {}}
        self.row_locks: Dict[uuid.UUID, asyncio.Lock] = {}
        self.fail_booking_insert = False

    def seed(self, obj):
        """Insert an entity as already committed."""
        _fill_defaults(obj)
        self.tables[obj.__tablename__][obj.id] = _row_of(obj)
        return obj

    def get_trip(self, trip_id: uuid.UUID) -> Optional[Trip]:
        """Detached copy of the committed trip row."""
        row = self.tables["trips"].get(trip_id)
        return Trip(**copy.deepcopy(row)) if row else None

    def get_booking(self, booking_id: uuid.UUID) -> Optional[Booking]:
        row = self.tables["bookings"].get(booking_id)
        return Booking(**copy.deepcopy(row)) if row else None

    def bookings_for(self, trip_id: uuid.UUID) -> List[Booking]:
        return [
            Booking(**copy.deepcopy(row))
            for row in self.tables["bookings"].values()
            if row["trip_id"] == trip_id
        ]


class FakeUnitOfWork(UnitOfWorkIface):
    """In-memory unit of work over an ``InMemoryStore``."""

    def __init__(self, store: InMemoryStore):
        self.store = store
        self.trips = TripRepoFake(self)
        self.bookings = BookingRepoFake(self)
        self._identity: Dict[Tuple[str, uuid.UUID], Tuple[Any, dict]] = {}
        self._undo: List[Callable[[], None]] = []
        self._locked: List[uuid.UUID] = []
        self.commits = 0
        self.rollbacks = 0

    async def begin(self) -> None:
        self._identity = {}
        self._undo = []

    async def commit(self) -> None:
        for (table, key), (obj, snapshot) in self._identity.items():
            row = self.store.tables[table].get(key)
            if row is None:
                continue
            for name, value in _row_of(obj).items():
                if value != snapshot.get(name):
                    row[name] = value
        self._identity = {}
        self._undo = []
        self._release_locks()
        self.commits += 1

    async def rollback(self, exc: Optional[BaseException] = None) -> None:
        for undo in reversed(self._undo):
            undo()
        self._identity = {}
        self._undo = []
        self._release_locks()
        self.rollbacks += 1

    async def lock_trip(self, trip_id: uuid.UUID) -> None:
        """Take the trip row lock; re-entrant within this unit of work."""
        if trip_id in self._locked:
            return
        lock = self.store.row_locks.setdefault(trip_id, asyncio.Lock())
        await lock.acquire()
        self._locked.append(trip_id)

    def _release_locks(self) -> None:
        for trip_id in self._locked:
            self.store.row_locks[trip_id].release()
        self._locked = []

    def journal(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def load(self, table: str, row: dict):
        key = (table, row["id"])
        if key not in self._identity:
            obj = MODELS[table](**copy.deepcopy(row))
            self._identity[key] = (obj, copy.deepcopy(row))
        return self._identity[key][0]

    def load_all(self, table: str) -> list:
        return [self.load(table, row) for row in list(self.store.tables[table].values())]

    def adopt(self, obj) -> None:
        """Track a new entity and make its row visible (like a flush)."""
        table = obj.__tablename__
        rows = self.store.tables[table]
        row = _row_of(obj)
        rows[obj.id] = copy.deepcopy(row)
        self._identity[(table, obj.id)] = (obj, row)
        self.journal(lambda: rows.pop(obj.id, None))

    def forget(self, obj) -> None:
        self._identity.pop((obj.__tablename__, obj.id), None)

    def refresh(self, obj, names) -> None:
        table = obj.__tablename__
        row = self.store.tables[table][obj.id]
        entry = self._identity.get((table, obj.id))
        for name in names:
            setattr(obj, name, copy.deepcopy(row[name]))
            if entry is not None:
                entry[1][name] = copy.deepcopy(row[name])


class TripRepoFake(TripRepoIface):
    """In-memory fake implementation of trips repository."""

    def __init__(self, uow: FakeUnitOfWork):
        self.uow = uow

    @property
    def _rows(self) -> Dict[uuid.UUID, dict]:
        return self.uow.store.tables["trips"]

    async def get(self, trip_id):
        # Yield so concurrent operations interleave like real I/O
        await asyncio.sleep(0)
        row = self._rows.get(trip_id)
        return self.uow.load("trips", row) if row else None

    async def get_for_update(self, trip_id):
        await asyncio.sleep(0)
        await self.uow.lock_trip(trip_id)
        row = self._rows.get(trip_id)
        if row is None:
            return None
        trip = self.uow.load("trips", row)
        # Locked reads see the latest committed row
        self.uow.refresh(trip, _columns(Trip))
        return trip

    async def add(self, trip):
        _fill_defaults(trip)
        self.uow.adopt(trip)
        return trip

    async def save(self, trip):
        return trip

    async def delete(self, trip):
        rows = self._rows
        row = rows.pop(trip.id)
        self.uow.forget(trip)
        self.uow.journal(lambda: rows.__setitem__(trip.id, row))

    async def search(
        self,
        from_city,
        to_city,
        seats,
        departure_from,
        departure_to=None,
        limit=50,
    ):
        from_key = from_city.strip().lower()
        to_key = to_city.strip().lower()
        trips = [
            t
            for t in self.uow.load_all("trips")
            if t.from_city.lower() == from_key
            and t.to_city.lower() == to_key
            and t.is_active
            and t.status in BOOKABLE_TRIP_STATUSES
            and t.available_seats - t.booked_seats >= seats
            and t.departure_date >= departure_from
            and (departure_to is None or t.departure_date < departure_to)
        ]
        trips.sort(key=lambda t: (t.departure_date, t.departure_time))
        return trips[:limit]

    async def popular_routes(self, limit=8):
        prices: Dict[Tuple[str, str], List[Decimal]] = {}
        for t in self.uow.load_all("trips"):
            if t.status == TripStatus.ACTIVE and t.is_active:
                prices.setdefault((t.from_city, t.to_city), []).append(
                    Decimal(t.price_per_seat)
                )
        routes = [
            {
                "from_city": from_city,
                "to_city": to_city,
                "trip_count": len(values),
                "average_price": (sum(values) / len(values)).quantize(
                    Decimal("1"), rounding=ROUND_HALF_UP
                ),
                "min_price": min(values),
            }
            for (from_city, to_city), values in prices.items()
        ]
        routes.sort(key=lambda r: r["trip_count"], reverse=True)
        return routes[:limit]

    async def list_by_driver(self, driver_id):
        trips = [t for t in self.uow.load_all("trips") if t.driver_id == driver_id]
        return sorted(trips, key=lambda t: t.created_at, reverse=True)

    def _filtered(self, status, search):
        trips = self.uow.load_all("trips")
        if status is not None:
            trips = [t for t in trips if t.status == status]
        if search:
            needle = search.lower()
            trips = [
                t
                for t in trips
                if needle in t.from_city.lower() or needle in t.to_city.lower()
            ]
        return sorted(trips, key=lambda t: t.created_at, reverse=True)

    async def list_trips(self, status=None, search=None, skip=0, limit=10):
        return self._filtered(status, search)[skip : skip + limit]

    async def count_trips(self, status=None, search=None):
        return len(self._filtered(status, search))

    async def reserve_seats(self, trip, seats, amount):
        await self.uow.lock_trip(trip.id)
        row = self._rows[trip.id]
        if not row["is_active"] or row["status"] not in BOOKABLE_TRIP_STATUSES:
            return False
        if row["available_seats"] - row["booked_seats"] < seats:
            return False

        row["booked_seats"] += seats
        row["total_earnings"] = Decimal(row["total_earnings"]) + amount

        def undo():
            row["booked_seats"] -= seats
            row["total_earnings"] -= amount

        self.uow.journal(undo)
        self.uow.refresh(trip, COUNTER_FIELDS)
        return True

    async def release_seats(self, trip, seats, amount):
        await self.uow.lock_trip(trip.id)
        row = self._rows[trip.id]
        old_booked = row["booked_seats"]
        old_earnings = Decimal(row["total_earnings"])
        row["booked_seats"] = max(old_booked - seats, 0)
        row["total_earnings"] = max(old_earnings - amount, Decimal("0"))
        released = old_booked - row["booked_seats"]
        refunded = old_earnings - row["total_earnings"]

        def undo():
            row["booked_seats"] += released
            row["total_earnings"] += refunded

        self.uow.journal(undo)
        self.uow.refresh(trip, COUNTER_FIELDS)


class BookingRepoFake(BookingRepoIface):
    """In-memory fake implementation of bookings repository."""

    def __init__(self, uow: FakeUnitOfWork):
        self.uow = uow

    @property
    def _rows(self) -> Dict[uuid.UUID, dict]:
        return self.uow.store.tables["bookings"]

    async def get(self, booking_id):
        await asyncio.sleep(0)
        row = self._rows.get(booking_id)
        return self.uow.load("bookings", row) if row else None

    async def add(self, booking):
        if self.uow.store.fail_booking_insert:
            raise PersistenceFailure()
        if booking.booking_status == BookingStatus.CONFIRMED and any(
            row["trip_id"] == booking.trip_id
            and row["passenger_id"] == booking.passenger_id
            and row["booking_status"] == BookingStatus.CONFIRMED
            for row in self._rows.values()
        ):
            raise DuplicateBookingError()

        _fill_defaults(booking)
        self.uow.adopt(booking)
        return booking

    async def save(self, booking):
        return booking

    async def find_confirmed(self, trip_id, passenger_id):
        await asyncio.sleep(0)
        for booking in self.uow.load_all("bookings"):
            if (
                booking.trip_id == trip_id
                and booking.passenger_id == passenger_id
                and booking.booking_status == BookingStatus.CONFIRMED
            ):
                return booking
        return None

    async def list_for_trip(self, trip_id, status=None):
        bookings = [b for b in self.uow.load_all("bookings") if b.trip_id == trip_id]
        if status is not None:
            bookings = [b for b in bookings if b.booking_status == status]
        return sorted(bookings, key=lambda b: b.created_at)

    async def list_for_passenger(self, passenger_id):
        bookings = [
            b for b in self.uow.load_all("bookings") if b.passenger_id == passenger_id
        ]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    def _filtered(self, status, payment_status):
        bookings = self.uow.load_all("bookings")
        if status is not None:
            bookings = [b for b in bookings if b.booking_status == status]
        if payment_status is not None:
            bookings = [b for b in bookings if b.payment_status == payment_status]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    async def list_bookings(self, status=None, payment_status=None, skip=0, limit=10):
        return self._filtered(status, payment_status)[skip : skip + limit]

    async def count_bookings(self, status=None, payment_status=None):
        return len(self._filtered(status, payment_status))

    async def mark_cancelled(self, booking):
        row = self._rows[booking.id]
        if row["booking_status"] != BookingStatus.CONFIRMED:
            return False

        row["booking_status"] = BookingStatus.CANCELLED
        self.uow.journal(
            lambda: row.__setitem__("booking_status", BookingStatus.CONFIRMED)
        )
        self.uow.refresh(booking, ["booking_status"])
        return True


__all__ = [
    "InMemoryStore",
    "FakeUnitOfWork",
    "TripRepoFake",
    "BookingRepoFake",
    "PaymentStatus",
]
