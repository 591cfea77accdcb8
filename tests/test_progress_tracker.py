# tests/test_progress_tracker.py
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.core.achievements.award import AwardEngine
from habitpulse.core.achievements.helpers import compute_percent
from habitpulse.core.achievements.models import AchievementProgress, UserAchievement
from habitpulse.core.achievements.schemas import AwardStatus, BulkProgressItem, ErrorCode, ProgressStatus
from habitpulse.core.achievements.tracker import ProgressTracker


async def _progress_row(db: AsyncSession, user_id: str, achievement_id: str):
    stmt = select(AchievementProgress).where(
        AchievementProgress.user_id == user_id,
        AchievementProgress.achievement_id == achievement_id,
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def _award_count(db: AsyncSession, user_id: str) -> int:
    stmt = select(func.count()).select_from(UserAchievement).where(UserAchievement.user_id == user_id)
    return (await db.execute(stmt)).scalar_one()


def test_compute_percent_floors_and_caps():
    assert compute_percent(5, 7) == 71
    assert compute_percent(7, 7) == 100
    assert compute_percent(9, 7) == 100
    assert compute_percent(0, 7) == 0
    assert compute_percent(3, 0) == 100


@pytest.mark.asyncio
async def test_progress_accumulates_below_threshold(db_session: AsyncSession, make_achievement):
    """Тест: сумма инкрементов ниже порога, награды нет."""
    await make_achievement("century", criteria_value=100)
    tracker = ProgressTracker(db_session)

    for amount in (3, 0, 10, 25):
        result = await tracker.add_progress("u1", "century", amount)
        assert result.status == ProgressStatus.PROGRESS_UPDATED
    await db_session.commit()

    progress = await _progress_row(db_session, "u1", "century")
    assert progress.current_value == 38
    assert progress.target_value == 100
    assert progress.percent_complete == 38
    assert await _award_count(db_session, "u1") == 0


@pytest.mark.asyncio
async def test_threshold_crossing_awards_and_removes_progress(db_session: AsyncSession, make_achievement):
    await make_achievement("ten", criteria_value=10)
    tracker = ProgressTracker(db_session)

    first = await tracker.add_progress("u1", "ten", 4)
    second = await tracker.add_progress("u1", "ten", 4)
    third = await tracker.add_progress("u1", "ten", 4)

    assert first.status == ProgressStatus.PROGRESS_UPDATED
    assert first.progress.current_value == 4
    assert second.status == ProgressStatus.PROGRESS_UPDATED
    assert second.progress.current_value == 8
    assert third.status == ProgressStatus.AWARDED
    assert third.progress.current_value == 12
    assert third.award is not None
    assert third.award.points_awarded == 100

    assert await _progress_row(db_session, "u1", "ten") is None
    assert await _award_count(db_session, "u1") == 1


@pytest.mark.asyncio
async def test_percent_is_computed_from_post_increment_value(db_session: AsyncSession, make_achievement):
    await make_achievement("seven", criteria_value=7)
    tracker = ProgressTracker(db_session)

    result = await tracker.add_progress("u1", "seven", 5)
    assert result.progress.percent_complete == 71

    overshoot = await tracker.add_progress("u1", "seven", 4)
    assert overshoot.status == ProgressStatus.AWARDED
    assert overshoot.progress.current_value == 9
    assert overshoot.progress.percent_complete == 100


@pytest.mark.asyncio
async def test_progress_after_award_is_ignored(db_session: AsyncSession, make_achievement):
    await make_achievement("one_shot", criteria_value=1)
    tracker = ProgressTracker(db_session)

    assert (await tracker.add_progress("u1", "one_shot", 1)).status == ProgressStatus.AWARDED
    again = await tracker.add_progress("u1", "one_shot", 5)

    assert again.status == ProgressStatus.ALREADY_AWARDED
    assert again.success is True
    assert await _progress_row(db_session, "u1", "one_shot") is None
    assert await _award_count(db_session, "u1") == 1


@pytest.mark.asyncio
async def test_unknown_achievement_returns_not_found(db_session: AsyncSession):
    tracker = ProgressTracker(db_session)

    result = await tracker.add_progress("u1", "does_not_exist", 1)

    assert result.status == ProgressStatus.FAILED
    assert result.error_code == ErrorCode.NOT_FOUND
    assert "does_not_exist" in result.message
    assert await _progress_row(db_session, "u1", "does_not_exist") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "user_id, achievement_id, amount",
    [("", "ten", 1), ("u1", "", 1), ("u1", "ten", -1)],
)
async def test_invalid_requests_are_rejected(db_session: AsyncSession, make_achievement, user_id, achievement_id, amount):
    await make_achievement("ten", criteria_value=10)
    tracker = ProgressTracker(db_session)

    result = await tracker.add_progress(user_id, achievement_id, amount)

    assert result.status == ProgressStatus.FAILED
    assert result.error_code == ErrorCode.INVALID_REQUEST
    assert await _progress_row(db_session, "u1", "ten") is None


@pytest.mark.asyncio
async def test_target_value_is_refreshed_from_catalog(db_session: AsyncSession, make_achievement):
    achievement = await make_achievement("moving_target", criteria_value=10)
    tracker = ProgressTracker(db_session)
    await tracker.add_progress("u1", "moving_target", 4)

    achievement.criteria_value = 20
    await db_session.flush()
    result = await tracker.add_progress("u1", "moving_target", 1)

    assert result.progress.target_value == 20
    assert result.progress.percent_complete == 25


@pytest.mark.asyncio
async def test_bulk_isolates_failures(db_session: AsyncSession, make_achievement):
    """Тест: ошибка одного элемента не отменяет остальные."""
    await make_achievement("ten", criteria_value=10)
    await make_achievement("two", criteria_value=2, points_reward=0)
    tracker = ProgressTracker(db_session)

    bulk = await tracker.add_progress_bulk(
        "u1",
        [
            BulkProgressItem(achievement_id="ten", amount=3),
            BulkProgressItem(achievement_id="missing", amount=1),
            BulkProgressItem(achievement_id="two", amount=2),
        ],
    )
    await db_session.commit()

    assert bulk.total_updates == 3
    assert bulk.successful_updates == 2
    statuses = [r.status for r in bulk.results]
    assert statuses == [ProgressStatus.PROGRESS_UPDATED, ProgressStatus.FAILED, ProgressStatus.AWARDED]
    assert bulk.results[1].error_code == ErrorCode.NOT_FOUND

    assert (await _progress_row(db_session, "u1", "ten")).current_value == 3
    assert await _award_count(db_session, "u1") == 1


@pytest.mark.asyncio
async def test_bulk_counts_already_awarded_as_success(db_session: AsyncSession, make_achievement):
    await make_achievement("one_shot", criteria_value=1)
    tracker = ProgressTracker(db_session)

    bulk = await tracker.add_progress_bulk(
        "u1",
        [BulkProgressItem(achievement_id="one_shot", amount=1), BulkProgressItem(achievement_id="one_shot", amount=1)],
    )

    assert [r.status for r in bulk.results] == [ProgressStatus.AWARDED, ProgressStatus.ALREADY_AWARDED]
    assert bulk.successful_updates == 2


def _stale_award_checks(monkeypatch, stale_calls: int):
    """Первые stale_calls проверок get_award "не видят" уже выданную ачивку."""
    real_get_award = AwardEngine.get_award
    calls = {"n": 0}

    async def stale_get_award(self, user_id, achievement_id):
        calls["n"] += 1
        if calls["n"] <= stale_calls:
            return None
        return await real_get_award(self, user_id, achievement_id)

    monkeypatch.setattr(AwardEngine, "get_award", stale_get_award)
    return calls


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [3, 10])
async def test_concurrent_award_discards_new_progress(db_session: AsyncSession, make_achievement, monkeypatch, amount):
    """Тест: ачивку выдал параллельный запрос, прогресс рядом с наградой не остается."""
    await make_achievement("ten", criteria_value=10)
    await AwardEngine(db_session).award("u1", "ten")
    await db_session.commit()
    _stale_award_checks(monkeypatch, stale_calls=1)

    result = await ProgressTracker(db_session).add_progress("u1", "ten", amount)
    await db_session.commit()

    assert result.status == ProgressStatus.ALREADY_AWARDED
    assert await _progress_row(db_session, "u1", "ten") is None
    assert await _award_count(db_session, "u1") == 1


@pytest.mark.asyncio
async def test_award_found_by_engine_reports_already_awarded(db_session: AsyncSession, make_achievement, monkeypatch):
    await make_achievement("ten", criteria_value=10)
    await AwardEngine(db_session).award("u1", "ten")
    await db_session.commit()
    calls = _stale_award_checks(monkeypatch, stale_calls=2)

    result = await ProgressTracker(db_session).add_progress("u1", "ten", 10)
    await db_session.commit()

    assert calls["n"] == 3
    assert result.status == ProgressStatus.ALREADY_AWARDED
    assert result.award.status == AwardStatus.ALREADY_AWARDED
    assert result.success is True
    assert await _progress_row(db_session, "u1", "ten") is None
    assert await _award_count(db_session, "u1") == 1
