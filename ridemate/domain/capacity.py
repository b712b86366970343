"""Seat capacity accounting for a single trip."""

from dataclasses import dataclass

from ridemate.core.errors import InsufficientCapacityError


@dataclass
class CapacityLedger:
    """
    Tracks (available, booked) seats for one trip.

    Invariant: 0 <= booked_seats <= available_seats. The ledger never
    persists anything; stores apply the same rule as one conditional update.
    """

    available_seats: int
    booked_seats: int = 0

    @property
    def remaining_seats(self) -> int:
        return self.available_seats - self.booked_seats

    def has_capacity(self, seats: int) -> bool:
        """True iff ``seats`` can be reserved. Non-positive requests fail closed."""
        if seats <= 0:
            return False
        return self.remaining_seats >= seats

    def reserve(self, seats: int) -> int:
        """Reserve ``seats`` and return the new booked count."""
        if not self.has_capacity(seats):
            raise InsufficientCapacityError(
                requested=seats, remaining=max(self.remaining_seats, 0)
            )
        self.booked_seats += seats
        return self.booked_seats

    def release(self, seats: int) -> int:
        """Release ``seats``, clamped at zero, and return the new booked count."""
        self.booked_seats = max(self.booked_seats - max(seats, 0), 0)
        return self.booked_seats
