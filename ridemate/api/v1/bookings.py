"""Booking API endpoints."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ridemate.auth import Principal, get_current_principal
from ridemate.dependencies import get_booking_coordinator, get_trip_service
from ridemate.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingCreatedResponse,
    BookingEnvelope,
    BookingListResponse,
    BookingResponse,
    OtpIssuedResponse,
    OtpVerificationResponse,
    VerifyOtpRequest,
)
from ridemate.services.booking_coordinator import TripBookingCoordinator
from ridemate.services.trip import TripService

router = APIRouter(prefix="/bookings", tags=["bookings"])

CoordinatorDep = Annotated[TripBookingCoordinator, Depends(get_booking_coordinator)]
TripServiceDep = Annotated[TripService, Depends(get_trip_service)]
PrincipalDep = Annotated[Principal, Depends(get_current_principal)]


@router.post(
    "",
    response_model=BookingCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a ride",
)
async def create_booking(
    booking_data: BookingCreate,
    coordinator: CoordinatorDep,
    principal: PrincipalDep,
):
    """
    Reserve seats on a trip and create a confirmed booking.

    - **trip**: Trip ID
    - **passenger**: Passenger user ID (must be the caller unless admin)
    - **seatsBooked**: Seats to reserve; **passengerDetails** needs one entry per seat
    - **pickupPoint** / **dropPoint**: Location and time

    The pickup code is returned once, in the `otp` field.
    """
    principal.ensure_self_or_admin(booking_data.passenger)

    result = await coordinator.book_trip(
        trip_id=booking_data.trip,
        passenger_id=booking_data.passenger,
        seats=booking_data.seats_booked,
        pickup_point=booking_data.pickup_point.model_dump(mode="json"),
        drop_point=booking_data.drop_point.model_dump(mode="json"),
        passenger_details=[
            detail.model_dump(mode="json") for detail in booking_data.passenger_details
        ],
        payment_method=booking_data.payment_method,
        special_requests=booking_data.special_requests,
    )
    return BookingCreatedResponse(
        data=BookingResponse.model_validate(result.booking),
        otp=result.otp,
    )


@router.get(
    "/me",
    response_model=BookingListResponse,
    summary="List my bookings",
)
async def list_my_bookings(
    trip_service: TripServiceDep,
    principal: PrincipalDep,
):
    """List the caller's bookings, newest first."""
    bookings = await trip_service.list_passenger_bookings(principal.id)
    return BookingListResponse(
        count=len(bookings),
        data=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.get(
    "/{booking_id}",
    response_model=BookingEnvelope,
    summary="Get booking by ID",
)
async def get_booking(
    booking_id: UUID,
    trip_service: TripServiceDep,
    principal: PrincipalDep,
):
    """Get a booking. Visible to its passenger, the trip's driver and admins."""
    booking = await trip_service.get_booking(booking_id, principal)
    return BookingEnvelope(data=BookingResponse.model_validate(booking))


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingEnvelope,
    summary="Cancel booking",
)
async def cancel_booking(
    booking_id: UUID,
    coordinator: CoordinatorDep,
    principal: PrincipalDep,
    cancel_data: Optional[BookingCancelRequest] = None,
):
    """
    Cancel a confirmed booking and release its seats.

    The refund follows the lead time before departure: 90% from 24h, 70%
    from 12h, 50% from 6h, nothing after that.
    """
    result = await coordinator.cancel_booking_by_id(
        booking_id, principal, reason=cancel_data.reason if cancel_data else None
    )
    return BookingEnvelope(
        message="Booking cancelled successfully",
        data=BookingResponse.model_validate(result.booking),
    )


@router.post(
    "/{booking_id}/verify-otp",
    response_model=OtpVerificationResponse,
    summary="Verify pickup code",
)
async def verify_otp(
    booking_id: UUID,
    verify_data: VerifyOtpRequest,
    coordinator: CoordinatorDep,
    principal: PrincipalDep,
):
    """Check the passenger's pickup code. Driver of the trip or admin only."""
    accepted = await coordinator.verify_pickup(booking_id, verify_data.code, principal)
    return OtpVerificationResponse(
        success=accepted,
        verified=accepted,
        message="Pickup verified" if accepted else "Invalid or expired code",
    )


@router.post(
    "/{booking_id}/otp",
    response_model=OtpIssuedResponse,
    summary="Regenerate pickup code",
)
async def regenerate_otp(
    booking_id: UUID,
    coordinator: CoordinatorDep,
    principal: PrincipalDep,
):
    """Issue a new pickup code for the caller's booking."""
    code = await coordinator.regenerate_otp(booking_id, principal)
    return OtpIssuedResponse(otp=code)
