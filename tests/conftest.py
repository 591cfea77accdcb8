# tests/conftest.py
import os
import sys

# Добавляем корень репозитория в PYTHONPATH, чтобы 'import habitpulse...' работал
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Тестовое окружение: in-memory SQLite и eager Celery
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("NOTIFICATION_PROVIDER", "log")
os.environ.setdefault("SEED_ACHIEVEMENTS_ON_STARTUP", "false")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.core.achievements.models import Achievement
from habitpulse.db.base import async_session_context, create_db_and_tables, drop_db_and_tables
from habitpulse.workers.tasks import celery_app

celery_app.conf.task_always_eager = True
celery_app.conf.task_eager_propagates = True


@pytest_asyncio.fixture(scope="function", autouse=True)
async def setup_db():
    await create_db_and_tables()
    yield
    await drop_db_and_tables()


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_context() as session:
        yield session


@pytest.fixture
def make_achievement(db_session: AsyncSession):
    """Фабрика ачивок каталога: await make_achievement("id", criteria_value=10, points_reward=100)."""

    async def _make(achievement_id: str, **fields) -> Achievement:
        values = {
            "name": achievement_id.replace("_", " ").title(),
            "description": f"Test achievement {achievement_id}",
            "criteria_type": "TOTAL_COMPLETIONS",
            "criteria_value": 10,
            "points_reward": 100,
        }
        values.update(fields)
        achievement = Achievement(id=achievement_id, **values)
        db_session.add(achievement)
        await db_session.flush()
        return achievement

    return _make
