"""Create trips and bookings

Revision ID: 0001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS = {
    "trip_status": (
        "pending",
        "approved",
        "rejected",
        "active",
        "completed",
        "cancelled",
    ),
    "trip_type": ("one-way", "round-trip"),
    "vehicle_type": ("car", "suv", "hatchback", "sedan", "motorcycle"),
    "booking_status": ("pending", "confirmed", "cancelled", "completed"),
    "payment_status": ("pending", "paid", "failed", "refunded"),
    "payment_method": ("cash", "online", "upi", "card"),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name)


def _timestamps() -> list:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "trips",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("driver_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("from_city", sa.String(length=100), nullable=False),
        sa.Column("from_state", sa.String(length=100), nullable=False),
        sa.Column("from_latitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("from_longitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("to_city", sa.String(length=100), nullable=False),
        sa.Column("to_state", sa.String(length=100), nullable=False),
        sa.Column("to_latitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("to_longitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("departure_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("departure_time", sa.String(length=5), nullable=False),
        sa.Column("return_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("return_time", sa.String(length=5), nullable=True),
        sa.Column("trip_type", _enum("trip_type"), nullable=False),
        sa.Column("vehicle_type", _enum("vehicle_type"), nullable=False),
        sa.Column("vehicle_model", sa.String(length=100), nullable=False),
        sa.Column("vehicle_number", sa.String(length=20), nullable=False),
        sa.Column("vehicle_color", sa.String(length=50), nullable=False),
        sa.Column("vehicle_rc_url", sa.String(length=500), nullable=True),
        sa.Column("vehicle_insurance_url", sa.String(length=500), nullable=True),
        sa.Column("license_number", sa.String(length=50), nullable=True),
        sa.Column("license_document_url", sa.String(length=500), nullable=True),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("booked_seats", sa.Integer(), nullable=False),
        sa.Column("price_per_seat", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_earnings", sa.Numeric(12, 2), nullable=False),
        sa.Column("pickup_points", postgresql.JSONB(), nullable=False),
        sa.Column("drop_points", postgresql.JSONB(), nullable=False),
        sa.Column("amenities", postgresql.JSONB(), nullable=False),
        sa.Column("rules", postgresql.JSONB(), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("status", _enum("trip_status"), nullable=False),
        sa.Column("admin_remarks", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "booked_seats >= 0 AND booked_seats <= available_seats",
            name="ck_trips_booked_seats_within_capacity",
        ),
        sa.CheckConstraint(
            "available_seats BETWEEN 1 AND 7", name="ck_trips_available_seats_range"
        ),
    )
    op.create_index(op.f("ix_trips_driver_id"), "trips", ["driver_id"])
    op.create_index(op.f("ix_trips_from_city"), "trips", ["from_city"])
    op.create_index(op.f("ix_trips_to_city"), "trips", ["to_city"])
    op.create_index(op.f("ix_trips_departure_date"), "trips", ["departure_date"])
    op.create_index(op.f("ix_trips_status"), "trips", ["status"])

    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("trip_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("passenger_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("seats_booked", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("pickup_point", postgresql.JSONB(), nullable=True),
        sa.Column("drop_point", postgresql.JSONB(), nullable=True),
        sa.Column("passenger_details", postgresql.JSONB(), nullable=False),
        sa.Column("booking_status", _enum("booking_status"), nullable=False),
        sa.Column("payment_status", _enum("payment_status"), nullable=False),
        sa.Column("payment_method", _enum("payment_method"), nullable=False),
        sa.Column("transaction_id", sa.String(length=100), nullable=True),
        sa.Column("special_requests", sa.String(length=300), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=500), nullable=True),
        sa.Column("cancelled_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("otp_code", sa.String(length=4), nullable=True),
        sa.Column("otp_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("otp_verified", sa.Boolean(), nullable=False),
        sa.Column("otp_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("otp_attempts", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["trip_id"], ["trips.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_bookings_trip_id"), "bookings", ["trip_id"])
    op.create_index(op.f("ix_bookings_passenger_id"), "bookings", ["passenger_id"])
    op.create_index(op.f("ix_bookings_booking_status"), "bookings", ["booking_status"])
    op.create_index(op.f("ix_bookings_payment_status"), "bookings", ["payment_status"])
    op.create_index(
        "ix_bookings_trip_status", "bookings", ["trip_id", "booking_status"]
    )
    # One live reservation per passenger per trip
    op.create_index(
        "uq_bookings_confirmed_trip_passenger",
        "bookings",
        ["trip_id", "passenger_id"],
        unique=True,
        postgresql_where=sa.text("booking_status = 'confirmed'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("bookings")
    op.drop_table("trips")
    for name in ENUMS:
        op.execute(f"DROP TYPE IF EXISTS {name}")
