"""Application metrics."""

from prometheus_client import Counter

# Booking metrics
bookings_created_total = Counter(
    "bookings_created_total",
    "Total number of confirmed bookings created",
    ["channel"],
)

booking_rejections_total = Counter(
    "booking_rejections_total",
    "Booking attempts rejected by the coordinator",
    ["reason"],
)

bookings_cancelled_total = Counter(
    "bookings_cancelled_total",
    "Total number of bookings cancelled",
    ["initiator"],
)

seats_reserved_total = Counter(
    "seats_reserved_total",
    "Total number of seats reserved",
)

refunds_issued_total = Counter(
    "refunds_issued_total",
    "Total number of cancellations that produced a refund",
)

# OTP metrics
otp_verifications_total = Counter(
    "otp_verifications_total",
    "Pickup OTP verification attempts",
    ["result"],
)

# Trip review metrics
trip_reviews_total = Counter(
    "trip_reviews_total",
    "Admin trip review decisions",
    ["decision"],
)

# Health metrics
health_ready_checks_total = Counter(
    "health_ready_checks_total",
    "Total number of readiness checks",
    ["result", "reason"],
)
