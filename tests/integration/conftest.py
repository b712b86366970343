"""Integration test configuration with Testcontainers."""

import os
from typing import Generator

import pytest
import pytest_asyncio
from sqlalchemy import text

from ridemate.config.settings import TestSettings
from ridemate.database import Database
from ridemate.storage.sql import SqlUnitOfWork

try:
    from docker.errors import DockerException
    from testcontainers.postgres import PostgresContainer

    _HAS_TESTCONTAINERS = True
except Exception:
    _HAS_TESTCONTAINERS = False


@pytest.fixture(scope="session")
def pg_container() -> Generator[dict, None, None]:
    """Start a Postgres container and apply migrations."""
    if not _HAS_TESTCONTAINERS:
        pytest.skip("Docker/Testcontainers not available")

    pg = PostgresContainer(
        "postgres:16",
        username="ridemate_test",
        password="ridemate_test",  # pragma: allowlist secret
        dbname="ridemate_test",
    )

    try:
        pg.start()
    except DockerException as e:
        pytest.skip(f"Docker/Testcontainers unavailable: {e}")
    except Exception as e:
        pytest.skip(f"Postgres container startup failed: {e}")

    try:
        base_sync_url = pg.get_connection_url()
        url_sync = base_sync_url.replace("postgresql+psycopg2://", "postgresql+psycopg://")
        url_async = base_sync_url.replace("postgresql+psycopg2://", "postgresql+asyncpg://")

        os.environ["ALEMBIC_DATABASE_URL"] = url_sync

        # Apply migrations
        from alembic import command
        from alembic.config import Config

        command.upgrade(Config("alembic.ini"), "head")

        yield {"url_sync": url_sync, "url_async": url_async}
    finally:
        os.environ.pop("ALEMBIC_DATABASE_URL", None)
        pg.stop()


@pytest.fixture
def db_settings(pg_container) -> TestSettings:
    return TestSettings(
        _env_file=None,
        ENVIRONMENT="test",
        database_url=pg_container["url_async"],
    )


@pytest_asyncio.fixture
async def database(db_settings):
    """Database bound to the container, emptied before each test."""
    db = Database(db_settings)
    async with db.engine.begin() as conn:
        await conn.execute(text("TRUNCATE TABLE bookings, trips CASCADE"))

    yield db

    await db.dispose()


@pytest_asyncio.fixture
async def new_uow(database):
    """Build units of work, each on its own session like separate requests."""
    sessions = []

    def _build() -> SqlUnitOfWork:
        session = database.sessionmaker()
        sessions.append(session)
        return SqlUnitOfWork(session)

    yield _build

    for session in sessions:
        await session.close()
