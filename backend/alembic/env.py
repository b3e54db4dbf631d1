"""Alembic entry point; migrations run against ``settings.DATABASE_URL``."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from moments_admin.core.config import settings
from moments_admin.core.database import Base, is_postgres
from moments_admin.models import album, item, outbox, tag, user  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
# same pooler constraint as the app engine
CONNECT_ARGS = {"statement_cache_size": 0} if is_postgres else {}


def _configure(**options) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=not is_postgres,
        **options,
    )


def run_migrations_offline() -> None:
    _configure(url=settings.DATABASE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _run_in_connection(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(settings.DATABASE_URL, poolclass=pool.NullPool, connect_args=CONNECT_ARGS)
    async with engine.connect() as connection:
        await connection.run_sync(_run_in_connection)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
