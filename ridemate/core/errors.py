"""Domain error taxonomy for the booking core.

Every error carries a stable ``code`` and the HTTP status the API layer
answers with. The app factory registers one handler for ``RideMateError``
that renders ``{"success": false, "error": code, "message": ...}``.
"""

from typing import Dict, List, Optional


class RideMateError(Exception):
    """Base class for all domain errors."""

    code = "error"
    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundError(RideMateError):
    """Trip or booking does not exist."""

    code = "not_found"
    status_code = 404


class ValidationFailure(RideMateError):
    """Missing or malformed input. ``details`` lists every offending field."""

    code = "validation_failed"
    status_code = 400

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailure":
        return cls(message, details=[{"field": field, "message": message}])


class InsufficientCapacityError(RideMateError):
    """Not enough remaining seats on the trip."""

    code = "insufficient_seats"
    status_code = 400

    def __init__(self, requested: int, remaining: int):
        super().__init__(
            f"Not enough seats available: requested {requested}, remaining {remaining}"
        )
        self.requested = requested
        self.remaining = remaining


class DuplicateBookingError(RideMateError):
    """Passenger already holds a confirmed booking on this trip."""

    code = "duplicate_booking"
    status_code = 400

    def __init__(self, message: str = "You have already booked this trip"):
        super().__init__(message)


class InvalidTransitionError(RideMateError):
    """Requested status change is not allowed from the current state."""

    code = "invalid_transition"
    status_code = 400


class ForbiddenError(RideMateError):
    """Authenticated identity may not act on this resource."""

    code = "forbidden"
    status_code = 403


class PersistenceFailure(RideMateError):
    """Underlying store error. The message shown to clients stays generic."""

    code = "persistence_failure"
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
