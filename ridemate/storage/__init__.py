"""Database storage layer."""

from .interfaces import BookingRepoIface, TripRepoIface, UnitOfWorkIface
from .sql import SqlBookingRepo, SqlTripRepo, SqlUnitOfWork

__all__ = [
    "TripRepoIface",
    "BookingRepoIface",
    "UnitOfWorkIface",
    "SqlTripRepo",
    "SqlBookingRepo",
    "SqlUnitOfWork",
]
