"""Alembic environment for the newsroom schema.

Offline mode renders SQL against ``settings.DATABASE_URL``; online mode
opens the same async engine the application uses (via
:class:`newsroom.database.Database`) and hands Alembic a synchronous
connection through ``run_sync``.
"""

import asyncio
from logging.config import fileConfig

from alembic import context

from newsroom.config import settings
from newsroom.database import Base, Database

# Registers every mapped table on Base.metadata for autogenerate.
import newsroom.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
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
    database = Database(settings.DATABASE_URL, pool_pre_ping=True)
    database.open()
    try:
        async with database.engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await database.close()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
