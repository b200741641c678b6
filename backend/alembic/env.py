"""
Alembic Migration Environment
===============================

What:  Runs the DevConnect migrations with the async engine.
How:   The database URL comes from devconnect.config (DATABASE_URL), never
       from alembic.ini. Migrations connect as the owner role; the RLS
       policies they install only bind the `anon` and `authenticated` roles.
Who:   `alembic -c backend/alembic.ini upgrade head`.

The hosted database also holds schemas managed by the platform itself
(auth, storage, realtime). Autogenerate only ever compares the `public`
tables declared in devconnect.models.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from devconnect.config import settings
from devconnect.database import Base

# Registers every table on Base.metadata for --autogenerate
import devconnect.models  # noqa: F401

MANAGED_SCHEMAS = {"auth", "storage", "realtime", "extensions", "graphql", "vault"}

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option("sqlalchemy.url", settings.database_url)


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Skip platform-managed schemas; a reflected table we don't model is left alone."""
    schema = getattr(obj, "schema", None)
    if schema in MANAGED_SCHEMAS:
        return False
    if type_ == "table" and reflected and compare_to is None:
        return False
    return True


def _options() -> dict:
    return {
        "target_metadata": Base.metadata,
        "include_object": include_object,
        "compare_type": True,
    }


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout instead of applying it."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on(connection: Connection) -> None:
    context.configure(connection=connection, **_options())
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(_run_on)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
