# habitpulse/core/achievements/tracker.py

"""Progress Tracker: точка входа для инкрементов активности пользователя."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .award import AwardEngine
from .catalog import AchievementCatalog
from .exceptions import AchievementError, InvalidProgressRequest
from .helpers import compute_percent, validate_ids
from .models import Achievement, AchievementProgress
from .schemas import (
    AwardStatus,
    BulkProgressItem,
    BulkProgressResult,
    ErrorCode,
    ProgressOut,
    ProgressResult,
    ProgressStatus,
)

log = logging.getLogger(__name__)


class ProgressTracker:
    """
    Накопление прогресса и проверка порога.

    Не бросает доменные ошибки наружу: любой сбой возвращается как
    ProgressResult со статусом FAILED и кодом ошибки.
    """

    def __init__(self, db_session: AsyncSession, award_engine: AwardEngine | None = None) -> None:
        self.db: AsyncSession = db_session
        self.catalog = AchievementCatalog(db_session)
        self.award_engine = award_engine or AwardEngine(db_session)

    # ------------------------------------------------------------------ #
    #                       Public business-methods                      #
    # ------------------------------------------------------------------ #

    async def add_progress(self, user_id: str, achievement_id: str, amount: int) -> ProgressResult:
        """
        Добавляет amount к прогрессу пользователя по ачивке.

        Args:
            user_id (str): ID пользователя.
            achievement_id (str): ID ачивки.
            amount (int): Неотрицательный инкремент.

        Returns:
            ProgressResult: ALREADY_AWARDED, PROGRESS_UPDATED, AWARDED или FAILED.
        """
        try:
            return await self._add_progress(user_id, achievement_id, amount)
        except AchievementError as e:
            log.warning(
                "add_progress failed for user %s / '%s': [%s] %s",
                user_id, achievement_id, e.code.value, e.message,
            )
            return self._failed(achievement_id, e.code, e.message)
        except SQLAlchemyError as e:
            log.exception("Database error in add_progress for user %s / '%s'", user_id, achievement_id)
            return self._failed(achievement_id, ErrorCode.TRANSACTION_FAILURE, str(e))

    async def add_progress_bulk(
        self, user_id: str, updates: Iterable[BulkProgressItem]
    ) -> BulkProgressResult:
        """
        Применяет add_progress по очереди. Каждый элемент в своем SAVEPOINT,
        ошибка одного не отменяет остальные.
        """
        results: list[ProgressResult] = []
        for item in updates:
            try:
                async with self.db.begin_nested():
                    result = await self.add_progress(user_id, item.achievement_id, item.amount)
            except SQLAlchemyError as e:
                log.exception("Bulk item '%s' for user %s rolled back", item.achievement_id, user_id)
                result = self._failed(item.achievement_id, ErrorCode.TRANSACTION_FAILURE, str(e))
            results.append(result)

        successful = sum(1 for r in results if r.success)
        log.info("Bulk progress for user %s: %d/%d successful", user_id, successful, len(results))
        return BulkProgressResult(
            results=results,
            total_updates=len(results),
            successful_updates=successful,
        )

    # ------------------------------------------------------------------ #
    #                              Helpers                               #
    # ------------------------------------------------------------------ #

    async def _add_progress(self, user_id: str, achievement_id: str, amount: int) -> ProgressResult:
        validate_ids(user_id, achievement_id)
        if amount is None or isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidProgressRequest("amount must be an integer")
        if amount < 0:
            raise InvalidProgressRequest(f"amount must be non-negative, got {amount}")

        achievement = await self.catalog.require(achievement_id)

        # Повторные события после выдачи ничего не пишут
        existing = await self.award_engine.get_award(user_id, achievement_id)
        if existing is not None:
            log.debug("Achievement '%s' already awarded to user %s", achievement_id, user_id)
            return ProgressResult(achievement_id=achievement_id, status=ProgressStatus.ALREADY_AWARDED)

        progress = await self._upsert(user_id, achievement, amount)

        # Повторная проверка под блокировкой строки: параллельный запрос мог выдать ачивку
        if await self.award_engine.get_award(user_id, achievement_id) is not None:
            log.info("Achievement '%s' was awarded to user %s concurrently", achievement_id, user_id)
            await self._discard_progress(user_id, achievement_id)
            return ProgressResult(achievement_id=achievement_id, status=ProgressStatus.ALREADY_AWARDED)

        snapshot = ProgressOut.model_validate(progress)

        if progress.current_value < achievement.criteria_value:
            log.debug(
                "Progress for user %s / '%s': %d/%d (%d%%)",
                user_id, achievement_id, progress.current_value,
                progress.target_value, progress.percent_complete,
            )
            return ProgressResult(
                achievement_id=achievement_id,
                status=ProgressStatus.PROGRESS_UPDATED,
                progress=snapshot,
            )

        log.info("User %s reached threshold for '%s', awarding", user_id, achievement_id)
        award_result = await self.award_engine.award(user_id, achievement_id, achievement=achievement)
        if award_result.status == AwardStatus.ALREADY_AWARDED:
            await self._discard_progress(user_id, achievement_id)
            return ProgressResult(
                achievement_id=achievement_id,
                status=ProgressStatus.ALREADY_AWARDED,
                award=award_result,
            )
        return ProgressResult(
            achievement_id=achievement_id,
            status=ProgressStatus.AWARDED,
            progress=snapshot,
            award=award_result,
        )

    async def _upsert(self, user_id: str, achievement: Achievement, amount: int) -> AchievementProgress:
        """Создает или увеличивает запись прогресса (строка блокируется на время транзакции)."""
        progress = await self._lock_progress(user_id, achievement.id)
        if progress is None:
            try:
                async with self.db.begin_nested():
                    progress = AchievementProgress(
                        user_id=user_id,
                        achievement_id=achievement.id,
                        current_value=amount,
                        target_value=achievement.criteria_value,
                        percent_complete=compute_percent(amount, achievement.criteria_value),
                    )
                    self.db.add(progress)
                return progress
            except IntegrityError:
                log.info("Progress row for user %s / '%s' created concurrently, updating", user_id, achievement.id)
                progress = await self._lock_progress(user_id, achievement.id)
                if progress is None:
                    raise

        progress.current_value = progress.current_value + amount
        progress.target_value = achievement.criteria_value
        progress.percent_complete = compute_percent(progress.current_value, achievement.criteria_value)
        progress.last_updated = datetime.now(timezone.utc)
        await self.db.flush()
        return progress

    async def _discard_progress(self, user_id: str, achievement_id: str) -> None:
        """Удаляет прогресс, оставшийся рядом с уже выданной ачивкой."""
        await self.db.execute(
            delete(AchievementProgress).where(
                AchievementProgress.user_id == user_id,
                AchievementProgress.achievement_id == achievement_id,
            )
        )

    async def _lock_progress(self, user_id: str, achievement_id: str) -> AchievementProgress | None:
        stmt = (
            select(AchievementProgress)
            .where(
                AchievementProgress.user_id == user_id,
                AchievementProgress.achievement_id == achievement_id,
            )
            .with_for_update()
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    @staticmethod
    def _failed(achievement_id: str, code: ErrorCode, message: str) -> ProgressResult:
        return ProgressResult(
            achievement_id=achievement_id or "",
            status=ProgressStatus.FAILED,
            error_code=code,
            message=message,
        )


__all__ = ["ProgressTracker"]
