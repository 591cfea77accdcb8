# habitpulse/core/achievements/award.py

"""
Award Engine: атомарный переход пары (пользователь, ачивка) в состояние AWARDED.

Внутри одного SAVEPOINT создается запись UserAchievement, удаляется прогресс,
начисляются очки (если points_reward > 0) и сохраняется уведомление.
Любая ошибка откатывает все четыре шага.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.config import settings
from habitpulse.core.notifications.models import NOTIFICATION_TYPE_ACHIEVEMENT_UNLOCKED, Notification
from habitpulse.core.notifications.service import NotificationsService
from habitpulse.core.points.models import POINTS_TYPE_ACHIEVEMENT_REWARD, SOURCE_TYPE_ACHIEVEMENT
from habitpulse.core.points.service import PointsLedger

from .catalog import AchievementCatalog
from .exceptions import AwardTransactionError
from .helpers import validate_ids
from .models import Achievement, AchievementProgress, UserAchievement
from .schemas import AwardOut, AwardResult, AwardStatus

log = logging.getLogger(__name__)

UNLOCK_NOTIFICATION_TITLE = "Achievement Unlocked! 🏆"


def build_unlock_message(achievement: Achievement) -> str:
    content = f'"{achievement.name}": {achievement.description}'
    if achievement.points_reward > 0:
        content += f" (+{achievement.points_reward} points)"
    return content


class AwardEngine:
    """
    Выдает ачивки. Ничего не коммитит сам: работает внутри транзакции
    вызывающего кода и изолирует свои записи в SAVEPOINT.
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self.db: AsyncSession = db_session
        self.catalog = AchievementCatalog(db_session)
        self.ledger = PointsLedger(db_session)
        self.notifications = NotificationsService(db_session)

    async def get_award(self, user_id: str, achievement_id: str) -> UserAchievement | None:
        stmt = select(UserAchievement).where(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_id == achievement_id,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def award(
        self,
        user_id: str,
        achievement_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        achievement: Achievement | None = None,
    ) -> AwardResult:
        """
        Выдает ачивку пользователю.

        Args:
            user_id (str): ID пользователя.
            achievement_id (str): ID ачивки из каталога.
            metadata (dict | None): Доп. данные, сохраняются в award_metadata.
            achievement (Achievement | None): Уже загруженное определение (из трекера).

        Returns:
            AwardResult: AWARDED или ALREADY_AWARDED (повторный вызов ничего не пишет).

        Raises:
            InvalidProgressRequest: Пустые идентификаторы.
            AchievementNotFound: Ачивки нет в каталоге.
            AwardTransactionError: Транзакция выдачи откатилась.
        """
        validate_ids(user_id, achievement_id)
        if achievement is None:
            achievement = await self.catalog.require(achievement_id)

        existing = await self.get_award(user_id, achievement_id)
        if existing is not None:
            log.info("Achievement '%s' already awarded to user %s, skipping", achievement_id, user_id)
            return self._already_awarded(existing)

        try:
            async with self.db.begin_nested():
                award, notification = await self._apply_award(user_id, achievement, metadata)
        except IntegrityError as e:
            # Уникальный ключ (user_id, achievement_id): параллельный запрос успел первым
            existing = await self.get_award(user_id, achievement_id)
            if existing is not None:
                log.info("Lost award race for '%s' / user %s, returning existing award", achievement_id, user_id)
                return self._already_awarded(existing)
            log.error("Award transaction failed for '%s' / user %s: %s", achievement_id, user_id, e)
            raise AwardTransactionError(f"Failed to award achievement '{achievement_id}': {e}") from e
        except SQLAlchemyError as e:
            log.error("Award transaction failed for '%s' / user %s: %s", achievement_id, user_id, e)
            raise AwardTransactionError(f"Failed to award achievement '{achievement_id}': {e}") from e

        log.info(
            "Awarded achievement '%s' to user %s (+%d points, notification id=%s)",
            achievement_id, user_id, award.points_awarded, notification.id,
        )
        return AwardResult(
            status=AwardStatus.AWARDED,
            award=AwardOut.model_validate(award),
            points_awarded=award.points_awarded,
            notification_id=notification.id,
        )

    # ------------------------------------------------------------------ #
    #                              Helpers                               #
    # ------------------------------------------------------------------ #

    async def _apply_award(
        self, user_id: str, achievement: Achievement, metadata: Optional[Dict[str, Any]]
    ) -> Tuple[UserAchievement, Notification]:
        points = max(achievement.points_reward, 0)

        # 1. Запись о выдаче
        award = UserAchievement(
            user_id=user_id,
            achievement_id=achievement.id,
            points_awarded=points,
            award_metadata=metadata,
        )
        self.db.add(award)
        await self.db.flush()

        # 2. Прогресс больше не нужен
        await self.db.execute(
            delete(AchievementProgress).where(
                AchievementProgress.user_id == user_id,
                AchievementProgress.achievement_id == achievement.id,
            )
        )

        # 3. Очки
        if points > 0:
            await self.ledger.credit(
                user_id,
                points,
                description=f"Awarded for achievement: {achievement.name}",
                type=POINTS_TYPE_ACHIEVEMENT_REWARD,
                source_type=SOURCE_TYPE_ACHIEVEMENT,
                source_id=achievement.id,
            )

        # 4. Уведомление (доставка после коммита)
        notification = await self.notifications.create_notification(
            user_id=user_id,
            title=UNLOCK_NOTIFICATION_TITLE,
            content=build_unlock_message(achievement),
            type=NOTIFICATION_TYPE_ACHIEVEMENT_UNLOCKED,
            related_id=achievement.id,
            action_url=settings.ACHIEVEMENTS_ACTION_URL,
        )
        return award, notification

    @staticmethod
    def _already_awarded(existing: UserAchievement) -> AwardResult:
        return AwardResult(
            status=AwardStatus.ALREADY_AWARDED,
            award=AwardOut.model_validate(existing),
            points_awarded=0,
        )


__all__ = ["AwardEngine", "build_unlock_message"]
