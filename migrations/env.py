"""Alembic environment configuration."""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def get_url() -> str:
    """Get database URL for migrations.

    Alembic uses ALEMBIC_DATABASE_URL if set, otherwise the synchronous
    (psycopg) variant of the environment's DATABASE_URL.
    """
    alembic_url = os.environ.get("ALEMBIC_DATABASE_URL")
    if alembic_url:
        return alembic_url

    from ridemate.config.settings import SettingsFactory

    return SettingsFactory.create().sync_database_url


def get_target_metadata():
    # Import here so model modules register their tables
    from ridemate import models  # noqa: F401

    return models.Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    Configures the context with just a URL, so no DBAPI is needed; calls to
    context.execute() emit SQL to the script output.
    """
    context.configure(
        url=get_url(),
        target_metadata=get_target_metadata(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    engine = create_engine(get_url(), future=True, pool_pre_ping=True)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=get_target_metadata(),
            compare_type=True,
            render_as_batch=False,
        )

        with context.begin_transaction():
            context.run_migrations()

    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
