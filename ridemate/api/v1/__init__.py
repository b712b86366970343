"""API v1 router configuration."""

from fastapi import APIRouter

from ridemate.api.v1.admin import router as admin_router
from ridemate.api.v1.bookings import router as bookings_router
from ridemate.api.v1.trips import router as trips_router

# Create main v1 router
v1_router = APIRouter(prefix="/v1")

# Include sub-routers
v1_router.include_router(trips_router)
v1_router.include_router(bookings_router)
v1_router.include_router(admin_router)
