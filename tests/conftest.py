"""Test configuration and fixtures for RideMate tests."""

import os

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Ensure we're using the test environment before settings are loaded
os.environ["ENVIRONMENT"] = "test"

from ridemate.auth import Role, create_user_token  # noqa: E402
from ridemate.config.settings import TestSettings, get_cached_settings  # noqa: E402
from ridemate.dependencies import (  # noqa: E402
    SettingsDep,
    UnitOfWorkDep,
    get_booking_coordinator,
    get_unit_of_work,
)
from ridemate.factory import create_app  # noqa: E402
from ridemate.services.booking_coordinator import TripBookingCoordinator  # noqa: E402
from ridemate.services.trip import TripService  # noqa: E402
from tests.fakes.builders import FrozenClock  # noqa: E402
from tests.fakes.repositories import FakeUnitOfWork, InMemoryStore  # noqa: E402


def reset_settings_cache():
    """Clear cached settings so environment changes are picked up."""
    get_cached_settings.cache_clear()


@pytest.fixture
def settings() -> TestSettings:
    """Test-specific settings."""
    return TestSettings(_env_file=None, ENVIRONMENT="test")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> InMemoryStore:
    """Empty in-memory database."""
    return InMemoryStore()


@pytest.fixture
def uow(store) -> FakeUnitOfWork:
    return FakeUnitOfWork(store)


@pytest.fixture
def coordinator(uow, settings, clock) -> TripBookingCoordinator:
    return TripBookingCoordinator.from_settings(uow, settings, clock=clock)


@pytest.fixture
def trip_service(uow, settings, coordinator) -> TripService:
    return TripService(uow, settings, coordinator=coordinator)


@pytest.fixture
def app(settings, store, clock) -> FastAPI:
    """App wired to the in-memory store and the frozen clock."""
    application = create_app(settings)

    def fake_unit_of_work():
        return FakeUnitOfWork(store)

    def frozen_coordinator(uow: UnitOfWorkDep, app_settings: SettingsDep):
        return TripBookingCoordinator.from_settings(uow, app_settings, clock=clock)

    application.dependency_overrides[get_unit_of_work] = fake_unit_of_work
    application.dependency_overrides[get_booking_coordinator] = frozen_coordinator
    return application


@pytest.fixture
def client(app) -> TestClient:
    """Create a synchronous test client."""
    return TestClient(app)


@pytest.fixture
def auth_headers(settings):
    """Build an Authorization header for a user id and role."""

    def _headers(user_id, role: Role = Role.USER) -> dict:
        token = create_user_token(user_id, settings, role=role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


def pytest_configure(config):
    """Configure pytest with custom settings."""
    # Set asyncio mode to auto
    config.option.asyncio_mode = "auto"

    # Configure logging
    import logging

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
