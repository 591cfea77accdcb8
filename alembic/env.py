# alembic/env.py

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

# --- Конфигурация ---
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# --- Метаданные Моделей ---
from habitpulse.config import settings
from habitpulse.db.base import Base

import habitpulse.core.achievements.models  # noqa
import habitpulse.core.notifications.models  # noqa
import habitpulse.core.points.models  # noqa

target_metadata = Base.metadata


def _get_url() -> str:
    # URL из alembic.ini имеет приоритет, иначе берем DATABASE_URL из настроек
    db_url = config.get_main_option("sqlalchemy.url") or settings.DATABASE_URL
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if db_url.startswith("postgresql+psycopg2://"):
        return db_url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if db_url.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
        return db_url
    raise ValueError(f"Unsupported DB URL scheme for async operation: {db_url}")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.
    Генерирует SQL скрипты без подключения к БД.
    """
    context.configure(
        url=_get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = create_async_engine(_get_url(), poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
