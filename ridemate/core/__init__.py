"""Core application functionality."""

from .errors import (
    DuplicateBookingError,
    ForbiddenError,
    InsufficientCapacityError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceFailure,
    RideMateError,
    ValidationFailure,
)
from .logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    get_logger,
    install_middlewares,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "CorrelationIdMiddleware",
    "RequestLoggingMiddleware",
    "install_middlewares",
    "RideMateError",
    "NotFoundError",
    "ValidationFailure",
    "InsufficientCapacityError",
    "DuplicateBookingError",
    "InvalidTransitionError",
    "ForbiddenError",
    "PersistenceFailure",
]
