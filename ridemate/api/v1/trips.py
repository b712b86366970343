"""Trip API endpoints, including the trip-embedded booking path."""

from datetime import date
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ridemate.auth import Principal, get_current_principal
from ridemate.dependencies import get_booking_coordinator, get_trip_service
from ridemate.schemas.common import MessageResponse
from ridemate.schemas.trip import (
    PopularRoute,
    PopularRoutesResponse,
    TripBookRequest,
    TripCancelBookingRequest,
    TripCancelRequest,
    TripCreate,
    TripEnvelope,
    TripListResponse,
    TripResponse,
    TripUpdate,
)
from ridemate.services.booking_coordinator import TripBookingCoordinator
from ridemate.services.trip import TripDetails, TripService

router = APIRouter(prefix="/trips", tags=["trips"])

CoordinatorDep = Annotated[TripBookingCoordinator, Depends(get_booking_coordinator)]
TripServiceDep = Annotated[TripService, Depends(get_trip_service)]
PrincipalDep = Annotated[Principal, Depends(get_current_principal)]


def _envelope(details: TripDetails, message: Optional[str] = None) -> TripEnvelope:
    return TripEnvelope(
        message=message,
        data=TripResponse.from_trip(details.trip, details.bookings),
    )


@router.get(
    "",
    response_model=TripListResponse,
    summary="Search trips",
)
async def search_trips(
    trip_service: TripServiceDep,
    from_city: Annotated[Optional[str], Query(alias="from")] = None,
    to_city: Annotated[Optional[str], Query(alias="to")] = None,
    on_date: Annotated[Optional[date], Query(alias="date")] = None,
    seats: Annotated[int, Query()] = 1,
):
    """
    Search bookable trips on a route.

    - **from** / **to**: City names, matched case-insensitively (required)
    - **date**: Restrict to one departure day; otherwise upcoming trips only
    - **seats**: Minimum remaining seats
    """
    trips = await trip_service.search_trips(from_city, to_city, on_date, seats)
    return TripListResponse(
        count=len(trips),
        data=[TripResponse.from_trip(trip) for trip in trips],
    )


@router.post(
    "",
    response_model=TripEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Offer a trip",
)
async def create_trip(
    trip_data: TripCreate,
    trip_service: TripServiceDep,
    principal: PrincipalDep,
):
    """Create a trip. New trips wait for admin approval before they can be booked."""
    trip = await trip_service.create_trip(trip_data, principal)
    return _envelope(TripDetails(trip=trip), "Trip created successfully")


@router.get(
    "/popular-routes",
    response_model=PopularRoutesResponse,
    summary="Most offered routes",
)
async def popular_routes(trip_service: TripServiceDep):
    """Active routes grouped by city pair, most offered first."""
    routes = await trip_service.popular_routes()
    return PopularRoutesResponse(
        data=[
            PopularRoute(
                from_=route["from_city"],
                to=route["to_city"],
                trip_count=route["trip_count"],
                average_price=route["average_price"],
                min_price=route["min_price"],
            )
            for route in routes
        ]
    )


@router.get(
    "/driver/{driver_id}",
    response_model=TripListResponse,
    summary="List a driver's trips",
)
async def list_driver_trips(driver_id: UUID, trip_service: TripServiceDep):
    """All trips offered by a driver with their passengers, newest first."""
    trips = await trip_service.list_driver_trips(driver_id)
    return TripListResponse(
        count=len(trips),
        data=[TripResponse.from_trip(d.trip, d.bookings) for d in trips],
    )


@router.get(
    "/{trip_id}",
    response_model=TripEnvelope,
    summary="Get trip by ID",
)
async def get_trip(trip_id: UUID, trip_service: TripServiceDep):
    details = await trip_service.get_trip(trip_id)
    return _envelope(details)


@router.put(
    "/{trip_id}",
    response_model=TripEnvelope,
    summary="Update trip",
)
async def update_trip(
    trip_id: UUID,
    trip_data: TripUpdate,
    trip_service: TripServiceDep,
    principal: PrincipalDep,
):
    """
    Update trip details. Driver or admin only.

    Capacity cannot drop below the seats already booked, and the price is
    frozen once any seat is booked.
    """
    details = await trip_service.update_trip(trip_id, trip_data, principal)
    return _envelope(details, "Trip updated successfully")


@router.delete(
    "/{trip_id}",
    response_model=MessageResponse,
    summary="Delete trip",
)
async def delete_trip(
    trip_id: UUID,
    trip_service: TripServiceDep,
    principal: PrincipalDep,
):
    """Delete a trip without confirmed bookings. Driver or admin only."""
    removed = await trip_service.delete_trip(trip_id, principal)
    message = "Trip deleted successfully" if removed else "Trip deactivated successfully"
    return MessageResponse(message=message)


@router.post(
    "/{trip_id}/book",
    response_model=TripEnvelope,
    summary="Book seats on a trip",
)
async def book_trip(
    trip_id: UUID,
    book_data: TripBookRequest,
    coordinator: CoordinatorDep,
    trip_service: TripServiceDep,
    principal: PrincipalDep,
):
    """
    Reserve seats for a user directly on the trip (cash payment).

    - **userId**: Passenger user ID (must be the caller unless admin)
    - **seatsRequested**: Number of seats
    """
    principal.ensure_self_or_admin(book_data.user_id)
    await coordinator.book_seats(trip_id, book_data.user_id, book_data.seats_requested)
    details = await trip_service.get_trip(trip_id)
    return _envelope(details, "Trip booked successfully")


@router.post(
    "/{trip_id}/cancel-booking",
    response_model=TripEnvelope,
    summary="Cancel a user's booking on a trip",
)
async def cancel_trip_booking(
    trip_id: UUID,
    cancel_data: TripCancelBookingRequest,
    coordinator: CoordinatorDep,
    trip_service: TripServiceDep,
    principal: PrincipalDep,
):
    """Cancel the user's confirmed booking on this trip and release the seats."""
    principal.ensure_self_or_admin(cancel_data.user_id)
    await coordinator.cancel_booking(
        trip_id,
        cancel_data.user_id,
        cancelled_by=principal.id,
        reason=cancel_data.reason,
    )
    details = await trip_service.get_trip(trip_id)
    return _envelope(details, "Booking cancelled successfully")


@router.post(
    "/{trip_id}/complete",
    response_model=TripEnvelope,
    summary="Complete trip",
)
async def complete_trip(
    trip_id: UUID,
    trip_service: TripServiceDep,
    principal: PrincipalDep,
):
    """Mark an active trip completed. Driver or admin only."""
    details = await trip_service.complete_trip(trip_id, principal)
    return _envelope(details, "Trip completed successfully")


@router.post(
    "/{trip_id}/cancel",
    response_model=TripEnvelope,
    summary="Cancel trip",
)
async def cancel_trip(
    trip_id: UUID,
    trip_service: TripServiceDep,
    principal: PrincipalDep,
    cancel_data: Optional[TripCancelRequest] = None,
):
    """Cancel a trip; every confirmed booking is cancelled with a full refund."""
    details = await trip_service.cancel_trip(
        trip_id, principal, reason=cancel_data.reason if cancel_data else None
    )
    return _envelope(details, "Trip cancelled successfully")
