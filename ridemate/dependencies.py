"""
FastAPI dependencies for RideMate.
Provides dependency injection for settings, database, and services.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridemate.config.settings import BaseAppSettings
from ridemate.storage.interfaces import UnitOfWorkIface
from ridemate.storage.sql import SqlUnitOfWork


def get_settings(request: Request) -> BaseAppSettings:
    """
    Get application settings from request state.

    Args:
        request: FastAPI request object.

    Returns:
        Environment-specific settings instance.
    """
    return request.app.state.settings


async def get_database(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Get async database session with proper cleanup.

    Args:
        request: FastAPI request object.

    Yields:
        SQLAlchemy async database session.
    """
    async for session in request.app.state.db.session():
        yield session


def get_unit_of_work(
    db: Annotated[AsyncSession, Depends(get_database)],
) -> UnitOfWorkIface:
    """
    Get a unit of work bound to the request's session.

    Tests override this dependency with the in-memory fake.
    """
    return SqlUnitOfWork(db)


def get_booking_coordinator(
    uow: Annotated[UnitOfWorkIface, Depends(get_unit_of_work)],
    settings: Annotated[BaseAppSettings, Depends(get_settings)],
):
    """
    Get trip-booking coordinator with unit of work and policy injected.

    Returns:
        TripBookingCoordinator instance.
    """
    from ridemate.services.booking_coordinator import TripBookingCoordinator

    return TripBookingCoordinator.from_settings(uow, settings)


def get_trip_service(
    uow: Annotated[UnitOfWorkIface, Depends(get_unit_of_work)],
    settings: Annotated[BaseAppSettings, Depends(get_settings)],
    coordinator=Depends(get_booking_coordinator),
):
    """
    Get trip service with all dependencies injected.

    Returns:
        TripService instance.
    """
    from ridemate.services.trip import TripService

    return TripService(uow=uow, settings=settings, coordinator=coordinator)


# Type aliases for cleaner code
SettingsDep = Annotated[BaseAppSettings, Depends(get_settings)]
DatabaseDep = Annotated[AsyncSession, Depends(get_database)]
UnitOfWorkDep = Annotated[UnitOfWorkIface, Depends(get_unit_of_work)]
