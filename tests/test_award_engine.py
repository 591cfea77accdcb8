# tests/test_award_engine.py
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.core.achievements.award import AwardEngine
from habitpulse.core.achievements.exceptions import (
    AchievementNotFound,
    AwardTransactionError,
    InvalidProgressRequest,
)
from habitpulse.core.achievements.models import AchievementProgress, UserAchievement
from habitpulse.core.achievements.schemas import AwardStatus, ErrorCode, ProgressStatus
from habitpulse.core.achievements.tracker import ProgressTracker
from habitpulse.core.notifications.models import Notification
from habitpulse.core.points.models import PointsLedgerEntry
from habitpulse.core.points.service import PointsLedger
from habitpulse.db.base import async_session_context


async def _count(db: AsyncSession, model, user_id: str) -> int:
    stmt = select(func.count()).select_from(model).where(model.user_id == user_id)
    return (await db.execute(stmt)).scalar_one()


@pytest.mark.asyncio
async def test_award_creates_award_points_and_notification(db_session: AsyncSession, make_achievement):
    await make_achievement("first_steps", name="First Steps", description="Complete your first habit", points_reward=50)
    engine = AwardEngine(db_session)

    result = await engine.award("u1", "first_steps")
    await db_session.commit()

    assert result.status == AwardStatus.AWARDED
    assert result.points_awarded == 50
    assert result.notification_id is not None

    async with async_session_context() as verify:
        assert await _count(verify, UserAchievement, "u1") == 1
        entries = (await verify.scalars(select(PointsLedgerEntry))).all()
        assert len(entries) == 1
        assert entries[0].points == 50
        assert entries[0].type == "ACHIEVEMENT_REWARD"
        assert entries[0].source_type == "ACHIEVEMENT"
        assert entries[0].source_id == "first_steps"
        assert entries[0].description == "Awarded for achievement: First Steps"
        assert await PointsLedger(verify).get_balance("u1") == 50

        notification = await verify.get(Notification, result.notification_id)
        assert notification.title == "Achievement Unlocked! 🏆"
        assert notification.content == '"First Steps": Complete your first habit (+50 points)'
        assert notification.type == "ACHIEVEMENT_UNLOCKED"
        assert notification.related_id == "first_steps"
        assert notification.action_url == "/achievements"
        assert notification.delivered_at is None


@pytest.mark.asyncio
async def test_award_is_idempotent(db_session: AsyncSession, make_achievement):
    """Тест: повторная выдача не создает ни награды, ни очков, ни уведомления."""
    await make_achievement("first_steps", points_reward=50)
    engine = AwardEngine(db_session)

    first = await engine.award("u1", "first_steps")
    second = await engine.award("u1", "first_steps")
    await db_session.commit()

    assert first.status == AwardStatus.AWARDED
    assert second.status == AwardStatus.ALREADY_AWARDED
    assert second.award.id == first.award.id
    assert second.points_awarded == 0
    assert second.notification_id is None

    assert await _count(db_session, UserAchievement, "u1") == 1
    assert await _count(db_session, PointsLedgerEntry, "u1") == 1
    assert await _count(db_session, Notification, "u1") == 1
    assert await PointsLedger(db_session).get_balance("u1") == 50


@pytest.mark.asyncio
async def test_zero_reward_creates_award_and_notification_only(db_session: AsyncSession, make_achievement):
    await make_achievement("badge_only", name="Badge Only", description="Just a badge", points_reward=0)
    ledger = PointsLedger(db_session)
    await ledger.credit("u1", 30, description="earlier reward")

    result = await AwardEngine(db_session).award("u1", "badge_only")

    assert result.status == AwardStatus.AWARDED
    assert result.points_awarded == 0
    assert await _count(db_session, UserAchievement, "u1") == 1
    assert await _count(db_session, PointsLedgerEntry, "u1") == 1
    assert await ledger.get_balance("u1") == 30

    notification = await db_session.get(Notification, result.notification_id)
    assert notification.content == '"Badge Only": Just a badge'


@pytest.mark.asyncio
async def test_award_stores_metadata(db_session: AsyncSession, make_achievement):
    await make_achievement("event_badge", points_reward=0)

    result = await AwardEngine(db_session).award("u1", "event_badge", metadata={"campaign": "spring"})

    assert result.award.award_metadata == {"campaign": "spring"}


@pytest.mark.asyncio
async def test_direct_award_removes_existing_progress(db_session: AsyncSession, make_achievement):
    await make_achievement("ten", criteria_value=10)
    await ProgressTracker(db_session).add_progress("u1", "ten", 3)

    await AwardEngine(db_session).award("u1", "ten")

    remaining = await _count(db_session, AchievementProgress, "u1")
    assert remaining == 0


@pytest.mark.asyncio
async def test_award_unknown_and_invalid(db_session: AsyncSession):
    engine = AwardEngine(db_session)

    with pytest.raises(AchievementNotFound) as exc_info:
        await engine.award("u1", "missing")
    assert exc_info.value.code == ErrorCode.NOT_FOUND

    with pytest.raises(InvalidProgressRequest):
        await engine.award("", "missing")


@pytest.mark.asyncio
async def test_failure_during_points_credit_rolls_back_award(db_session: AsyncSession, make_achievement, monkeypatch):
    """Тест: сбой при начислении очков откатывает награду, очки и уведомление."""
    await make_achievement("ten", criteria_value=10, points_reward=100)
    await db_session.commit()

    async def broken_credit(self, *args, **kwargs):
        raise OperationalError("UPDATE user_points_balances ...", {}, Exception("database is locked"))

    monkeypatch.setattr(PointsLedger, "credit", broken_credit)
    tracker = ProgressTracker(db_session)

    result = await tracker.add_progress("u1", "ten", 10)
    await db_session.commit()

    assert result.status == ProgressStatus.FAILED
    assert result.error_code == ErrorCode.TRANSACTION_FAILURE

    async with async_session_context() as verify:
        assert await _count(verify, UserAchievement, "u1") == 0
        assert await _count(verify, PointsLedgerEntry, "u1") == 0
        assert await _count(verify, Notification, "u1") == 0
        assert await PointsLedger(verify).get_balance("u1") == 0
        # Прогресс сохраняется: следующий вызов или repair повторит выдачу
        progress = (await verify.scalars(select(AchievementProgress))).one()
        assert progress.current_value == 10


@pytest.mark.asyncio
async def test_direct_award_failure_raises_transaction_error(db_session: AsyncSession, make_achievement, monkeypatch):
    await make_achievement("ten", points_reward=100)

    async def broken_credit(self, *args, **kwargs):
        raise OperationalError("INSERT INTO points_ledger ...", {}, Exception("disk I/O error"))

    monkeypatch.setattr(PointsLedger, "credit", broken_credit)

    with pytest.raises(AwardTransactionError) as exc_info:
        await AwardEngine(db_session).award("u1", "ten")

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert await _count(db_session, UserAchievement, "u1") == 0
    assert await _count(db_session, Notification, "u1") == 0


@pytest.mark.asyncio
async def test_lost_award_race_returns_already_awarded(db_session: AsyncSession, make_achievement, monkeypatch):
    """Тест: если параллельный запрос выдал ачивку первым, получаем ALREADY_AWARDED."""
    await make_achievement("first_steps", points_reward=50)
    engine = AwardEngine(db_session)
    winner = await engine.award("u1", "first_steps")
    await db_session.commit()

    real_get_award = AwardEngine.get_award
    calls = {"n": 0}

    async def stale_get_award(self, user_id, achievement_id):
        calls["n"] += 1
        if calls["n"] == 1:
            # Проверка идемпотентности "не видит" чужую награду
            return None
        return await real_get_award(self, user_id, achievement_id)

    monkeypatch.setattr(AwardEngine, "get_award", stale_get_award)

    result = await engine.award("u1", "first_steps")
    await db_session.commit()

    assert result.status == AwardStatus.ALREADY_AWARDED
    assert result.award.id == winner.award.id
    assert await _count(db_session, UserAchievement, "u1") == 1
    assert await _count(db_session, PointsLedgerEntry, "u1") == 1
    assert await _count(db_session, Notification, "u1") == 1
    assert await PointsLedger(db_session).get_balance("u1") == 50
