"""Unit test configuration."""

import pytest

from ridemate.models import TripStatus
from tests.fakes.builders import make_trip


class StubDatabase:
    """Stands in for ``app.state.db`` where only ``ping`` matters."""

    def __init__(self, reachable: bool):
        self.reachable = reachable

    async def ping(self) -> bool:
        return self.reachable

    async def dispose(self) -> None:
        return None


@pytest.fixture
def trip(store):
    """Committed active trip: 4 seats at 150, departing in 48 hours."""
    return store.seed(make_trip())


@pytest.fixture
def pending_trip(store):
    """Committed trip awaiting admin review."""
    return store.seed(make_trip(status=TripStatus.PENDING))


@pytest.fixture
def stub_db():
    return StubDatabase
