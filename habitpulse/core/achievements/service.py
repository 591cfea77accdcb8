# habitpulse/core/achievements/service.py

"""Facade над трекером, движком наград и каталогом."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.core.streaks import StreakCalculator

from .award import AwardEngine
from .catalog import AchievementCatalog
from .exceptions import AchievementError
from .helpers import compute_percent
from .models import Achievement, AchievementProgress, UserAchievement
from .schemas import (
    AchievementOut,
    AchievementProgressView,
    AwardResult,
    BulkProgressItem,
    BulkProgressResult,
    ProgressResult,
    ProgressState,
    RepairReport,
)
from .tracker import ProgressTracker

log = logging.getLogger(__name__)


class AchievementsService:
    """
    Сервис для управления ачивками пользователя.
    Использует внедрение зависимостей (DI) для получения AsyncSession;
    коммит выполняет вызывающий код (FastAPI зависимость или Celery задача).
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self.db: AsyncSession = db_session
        self.catalog = AchievementCatalog(db_session)
        self.award_engine = AwardEngine(db_session)
        self.tracker = ProgressTracker(db_session, award_engine=self.award_engine)

    # --- Запись ---

    async def add_progress(self, user_id: str, achievement_id: str, amount: int) -> ProgressResult:
        return await self.tracker.add_progress(user_id, achievement_id, amount)

    async def add_progress_bulk(
        self, user_id: str, updates: Iterable[BulkProgressItem]
    ) -> BulkProgressResult:
        return await self.tracker.add_progress_bulk(user_id, updates)

    async def award(
        self, user_id: str, achievement_id: str, metadata: Optional[Dict[str, Any]] = None
    ) -> AwardResult:
        """Прямая выдача (внешний одноразовый триггер). Бросает AchievementError."""
        return await self.award_engine.award(user_id, achievement_id, metadata=metadata)

    async def record_streak_progress(
        self,
        user_id: str,
        calculator: StreakCalculator,
        habit: Any,
        completion_event: Any,
    ) -> ProgressResult | None:
        """
        Передает событие выполнения привычки в калькулятор серий и, если он
        вернул дельту, применяет ее через add_progress.
        """
        delta = calculator.compute_streak_delta(habit, completion_event)
        if delta is None:
            log.debug("Streak calculator '%s' produced no delta for user %s", calculator.name, user_id)
            return None
        log.info(
            "Streak calculator '%s': +%d to '%s' for user %s",
            calculator.name, delta.amount, delta.achievement_id, user_id,
        )
        return await self.add_progress(user_id, delta.achievement_id, delta.amount)

    # --- Чтение ---

    async def get_progress(self, user_id: str, achievement_id: str) -> AchievementProgressView:
        """
        Состояние пары (пользователь, ачивка): COMPLETED, IN_PROGRESS или NOT_STARTED.

        Raises:
            AchievementNotFound: Ачивки нет в каталоге.
        """
        achievement = await self.catalog.require(achievement_id)
        award = await self.award_engine.get_award(user_id, achievement_id)
        progress = await self._get_progress_row(user_id, achievement_id)
        return self._build_view(achievement, progress, award)

    async def list_user_progress(
        self, user_id: str, include_hidden: bool = False
    ) -> List[AchievementProgressView]:
        """Все ачивки каталога с состоянием для пользователя. Скрытые видны только после выдачи."""
        achievements = await self.catalog.list_all(include_hidden=True)
        progress_by_id = {p.achievement_id: p for p in await self._list_progress_rows(user_id)}
        awards_by_id = {a.achievement_id: a for a in await self.list_user_awards(user_id)}

        views: List[AchievementProgressView] = []
        for achievement in achievements:
            award = awards_by_id.get(achievement.id)
            if achievement.is_hidden and award is None and not include_hidden:
                continue
            views.append(self._build_view(achievement, progress_by_id.get(achievement.id), award))
        return views

    async def list_user_awards(self, user_id: str) -> Sequence[UserAchievement]:
        stmt = (
            select(UserAchievement)
            .where(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.awarded_at.desc(), UserAchievement.id.desc())
        )
        result = await self.db.scalars(stmt)
        return result.all()

    # --- Восстановление ---

    async def repair_progress(self, user_id: str) -> RepairReport:
        """
        Находит и исправляет рассинхронизацию прогресса и наград:
        удаляет прогресс уже выданных ачивок, обновляет target/percent из каталога
        и выдает ачивки, порог которых уже достигнут. current_value не уменьшается.
        """
        report = RepairReport(user_id=user_id)
        awarded_ids = {a.achievement_id for a in await self.list_user_awards(user_id)}

        for progress in await self._list_progress_rows(user_id):
            achievement_id = progress.achievement_id
            if achievement_id in awarded_ids:
                await self.db.delete(progress)
                report.removed_progress.append(achievement_id)
                continue

            achievement = await self.catalog.get(achievement_id)
            if achievement is None:
                continue

            percent = compute_percent(progress.current_value, achievement.criteria_value)
            if progress.target_value != achievement.criteria_value or progress.percent_complete != percent:
                progress.target_value = achievement.criteria_value
                progress.percent_complete = percent
                report.refreshed_progress.append(achievement_id)

            if progress.current_value >= achievement.criteria_value:
                try:
                    result = await self.award_engine.award(user_id, achievement_id, achievement=achievement)
                    report.awarded.append(achievement_id)
                    if result.notification_id is not None:
                        report.notification_ids.append(result.notification_id)
                except AchievementError as e:
                    log.error("Repair could not award '%s' to user %s: %s", achievement_id, user_id, e.message)
                    report.failed.append(achievement_id)

        await self.db.flush()
        log.info(
            "Repair for user %s: removed=%s refreshed=%s awarded=%s failed=%s",
            user_id, report.removed_progress, report.refreshed_progress, report.awarded, report.failed,
        )
        return report

    # ------------------------------------------------------------------ #
    #                              Helpers                               #
    # ------------------------------------------------------------------ #

    async def _get_progress_row(self, user_id: str, achievement_id: str) -> AchievementProgress | None:
        stmt = select(AchievementProgress).where(
            AchievementProgress.user_id == user_id,
            AchievementProgress.achievement_id == achievement_id,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def _list_progress_rows(self, user_id: str) -> Sequence[AchievementProgress]:
        stmt = select(AchievementProgress).where(AchievementProgress.user_id == user_id)
        result = await self.db.scalars(stmt)
        return result.all()

    @staticmethod
    def _build_view(
        achievement: Achievement,
        progress: AchievementProgress | None,
        award: UserAchievement | None,
    ) -> AchievementProgressView:
        definition = AchievementOut.model_validate(achievement)
        if award is not None:
            return AchievementProgressView(
                state=ProgressState.COMPLETED,
                achievement=definition,
                current_value=achievement.criteria_value,
                target_value=achievement.criteria_value,
                percent_complete=100,
                awarded_at=award.awarded_at,
            )
        if progress is not None:
            return AchievementProgressView(
                state=ProgressState.IN_PROGRESS,
                achievement=definition,
                current_value=progress.current_value,
                target_value=progress.target_value,
                percent_complete=progress.percent_complete,
                last_updated=progress.last_updated,
            )
        return AchievementProgressView(
            state=ProgressState.NOT_STARTED,
            achievement=definition,
            target_value=achievement.criteria_value,
        )


__all__ = ["AchievementsService"]
