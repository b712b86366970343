"""Time-based refund schedule for cancelled bookings."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")

# (minimum hours before departure, refunded fraction), checked top-down
REFUND_SCHEDULE = (
    (24, Decimal("0.9")),
    (12, Decimal("0.7")),
    (6, Decimal("0.5")),
)


def refund_fraction(hours_until_departure: float) -> Decimal:
    """Fraction of the booking amount refunded for the given lead time."""
    for min_hours, fraction in REFUND_SCHEDULE:
        if hours_until_departure >= min_hours:
            return fraction
    return Decimal("0")


def hours_until(departs_at: datetime, now: datetime) -> float:
    """Hours from ``now`` to ``departs_at``; negative once departed."""
    return (departs_at - now).total_seconds() / 3600


def refund_amount(total_amount: Decimal, departs_at: datetime, now: datetime) -> Decimal:
    fraction = refund_fraction(hours_until(departs_at, now))
    return (Decimal(total_amount) * fraction).quantize(CENTS, rounding=ROUND_HALF_UP)
