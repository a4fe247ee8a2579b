"""Alembic environment configuration for async SQLAlchemy.

This env.py supports both offline (SQL script generation) and online
(direct database connection) migration modes using an async engine.
The schema is described by SQLAlchemy Core tables rather than mapped
classes, so autogenerate compares against ``conduit.models.metadata``.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from conduit.config import settings
from conduit.models import metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Credentials live in Settings (.env / environment variables) only.
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

target_metadata = metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL instead of executing it."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations on an async engine.

    AsyncConnection.run_sync() hands a synchronous connection to Alembic's
    migration runner.
    """
    connectable = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
