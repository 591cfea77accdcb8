# habitpulse/db/base.py

from __future__ import annotations

import contextlib
import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool, StaticPool

from habitpulse.config import settings

log = logging.getLogger(__name__)


# --- Declarative Base ---
class Base(DeclarativeBase):
    pass


# --- SQLite: SAVEPOINT-ы ---
def _enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    """
    pysqlite/aiosqlite сами решают, когда начинать транзакцию, и ломают SAVEPOINT.
    Отключаем их BEGIN и отправляем свой, как рекомендует документация SQLAlchemy.
    """

    @event.listens_for(async_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(async_engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def _build_engine() -> AsyncEngine:
    engine_kwargs: Dict[str, Any] = {"future": True}

    if settings.ENVIRONMENT == "test":
        log.info("Using in-memory SQLite database (aiosqlite) for tests.")
        url = "sqlite+aiosqlite:///:memory:"
        # Одно соединение на весь процесс, иначе in-memory база у каждого своя
        engine_kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        url = settings.DATABASE_URL
        log.info("Using ASYNC database: %s", url.split("@")[-1])
        if not url.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError("DATABASE_URL must use the 'asyncpg' or 'aiosqlite' driver for async operations.")
        engine_kwargs.update(echo=(settings.ENVIRONMENT == "dev"), pool_pre_ping=True)
        if settings.DATABASE_NULL_POOL:
            engine_kwargs["poolclass"] = NullPool

    async_engine = create_async_engine(url, **engine_kwargs)
    if async_engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(async_engine)
    return async_engine


# --- Engine & Session factory ---
engine: AsyncEngine = _build_engine()
async_session_factory = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


async def get_async_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: Creates and yields an async session, handling commit/rollback.
    """
    session = async_session_factory()
    session_id_for_log = id(session)
    try:
        log.debug(">>> get_async_db_session: Session %s created, yielding...", session_id_for_log)
        yield session
        log.debug(">>> get_async_db_session: Session %s work done, committing...", session_id_for_log)
        await session.commit()
        log.debug(">>> get_async_db_session: Session %s committed.", session_id_for_log)
    except SQLAlchemyError:
        log.exception(
            ">>> get_async_db_session: SQLAlchemyError in session %s, rolling back...",
            session_id_for_log,
        )
        await session.rollback()
        raise
    except Exception:
        log.debug(
            ">>> get_async_db_session: Exception in session %s scope, rolling back...",
            session_id_for_log,
        )
        await session.rollback()
        raise
    finally:
        log.debug(">>> get_async_db_session: Closing session %s", session_id_for_log)
        await session.close()


@contextlib.asynccontextmanager
async def async_session_context() -> AsyncGenerator[AsyncSession, None]:
    session: AsyncSession = async_session_factory()
    log.debug("Entering async session context %s", id(session))
    try:
        yield session
        log.debug("Committing session %s from context", id(session))
        await session.commit()
    except Exception:
        log.exception("Rolling back session %s from context due to exception", id(session))
        await session.rollback()
        raise
    finally:
        log.debug("Closing session %s from context", id(session))
        await session.close()


def _import_models() -> None:
    # Регистрируем модели в Base.metadata
    import habitpulse.core.achievements.models  # noqa: F401
    import habitpulse.core.notifications.models  # noqa: F401
    import habitpulse.core.points.models  # noqa: F401


async def create_db_and_tables() -> None:
    _import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.debug("Database tables created.")


async def drop_db_and_tables() -> None:
    _import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    log.debug("Database tables dropped.")


__all__ = [
    "Base", "engine", "async_session_factory", "AsyncSession",
    "get_async_db_session", "async_session_context",
    "create_db_and_tables", "drop_db_and_tables",
]
