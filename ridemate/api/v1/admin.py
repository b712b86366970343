"""Admin review endpoints for trips and bookings."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ridemate.auth import require_admin
from ridemate.dependencies import get_trip_service
from ridemate.models import BookingStatus, PaymentStatus, TripStatus
from ridemate.schemas.admin import (
    AdminBookingList,
    AdminTripDetail,
    AdminTripList,
    AdminTripReviewResponse,
    TripApproveRequest,
    TripRejectRequest,
)
from ridemate.schemas.booking import BookingEnvelope, BookingResponse
from ridemate.schemas.common import page_meta
from ridemate.schemas.trip import TripResponse
from ridemate.services.trip import TripService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

TripServiceDep = Annotated[TripService, Depends(get_trip_service)]
PageQuery = Annotated[int, Query(ge=1)]
LimitQuery = Annotated[int, Query(ge=1, le=100)]


@router.get("/trips", response_model=AdminTripList, summary="List trips for review")
async def list_trips(
    trip_service: TripServiceDep,
    trip_status: Annotated[Optional[TripStatus], Query(alias="status")] = None,
    search: Optional[str] = None,
    page: PageQuery = 1,
    limit: LimitQuery = 10,
):
    """List trips, newest first, filtered by status and city name."""
    trips, total = await trip_service.list_trips(trip_status, search, page, limit)
    return AdminTripList(
        trips=[TripResponse.from_trip(trip) for trip in trips],
        **page_meta(total, page, limit),
    )


@router.get(
    "/trips/{trip_id}", response_model=AdminTripDetail, summary="Get trip with bookings"
)
async def get_trip(trip_id: UUID, trip_service: TripServiceDep):
    details = await trip_service.get_trip(trip_id)
    return AdminTripDetail(
        trip=TripResponse.from_trip(details.trip, details.bookings),
        bookings=[BookingResponse.model_validate(b) for b in details.bookings],
    )


@router.patch(
    "/trips/{trip_id}/approve",
    response_model=AdminTripReviewResponse,
    summary="Approve trip",
)
async def approve_trip(
    trip_id: UUID,
    trip_service: TripServiceDep,
    review: Optional[TripApproveRequest] = None,
):
    """Approve a pending trip; it becomes active and bookable."""
    trip = await trip_service.approve_trip(
        trip_id, review.admin_remarks if review else None
    )
    return AdminTripReviewResponse(
        message="Trip approved successfully", trip=TripResponse.from_trip(trip)
    )


@router.patch(
    "/trips/{trip_id}/reject",
    response_model=AdminTripReviewResponse,
    summary="Reject trip",
)
async def reject_trip(
    trip_id: UUID,
    review: TripRejectRequest,
    trip_service: TripServiceDep,
):
    """Reject a pending trip. Remarks are required."""
    trip = await trip_service.reject_trip(trip_id, review.admin_remarks)
    return AdminTripReviewResponse(
        message="Trip rejected successfully", trip=TripResponse.from_trip(trip)
    )


@router.get(
    "/bookings", response_model=AdminBookingList, summary="List bookings for review"
)
async def list_bookings(
    trip_service: TripServiceDep,
    booking_status: Annotated[Optional[BookingStatus], Query(alias="status")] = None,
    payment_status: Annotated[
        Optional[PaymentStatus], Query(alias="paymentStatus")
    ] = None,
    page: PageQuery = 1,
    limit: LimitQuery = 10,
):
    bookings, total = await trip_service.list_bookings(
        booking_status, payment_status, page, limit
    )
    return AdminBookingList(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        **page_meta(total, page, limit),
    )


@router.get(
    "/bookings/{booking_id}", response_model=BookingEnvelope, summary="Get booking"
)
async def get_booking(booking_id: UUID, trip_service: TripServiceDep):
    booking = await trip_service.get_booking(booking_id)
    return BookingEnvelope(data=BookingResponse.model_validate(booking))
