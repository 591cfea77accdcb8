# habitpulse/core/achievements/catalog.py

"""Read-only lookup of achievement definitions (+ seeding of the default set)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import AchievementNotFound
from .models import Achievement

log = logging.getLogger(__name__)

# --- Каталог по умолчанию ---
# Ключ - стабильный id ачивки; значения - поля модели Achievement
DEFAULT_ACHIEVEMENTS: Dict[str, Dict[str, Any]] = {
    "first_steps": {
        "name": "First Steps",
        "description": "Complete your first habit",
        "icon": "footsteps",
        "badge_image": "/badges/first_steps.png",
        "criteria_type": "TOTAL_COMPLETIONS",
        "criteria_value": 1,
        "xp_value": 10,
        "points_reward": 50,
    },
    "habit_century": {
        "name": "Habit Century",
        "description": "Complete 100 habits",
        "icon": "hundred",
        "badge_image": "/badges/century.png",
        "criteria_type": "TOTAL_COMPLETIONS",
        "criteria_value": 100,
        "xp_value": 50,
        "points_reward": 200,
    },
    "consistency_is_key": {
        "name": "Consistency is Key",
        "description": "Maintain a 7-day streak",
        "icon": "fire",
        "badge_image": "/badges/streak_7.png",
        "criteria_type": "STREAK_LENGTH",
        "criteria_value": 7,
        "xp_value": 25,
        "points_reward": 100,
    },
    "month_master": {
        "name": "Month Master",
        "description": "Maintain a 30-day streak",
        "icon": "calendar-check",
        "badge_image": "/badges/streak_30.png",
        "criteria_type": "STREAK_LENGTH",
        "criteria_value": 30,
        "xp_value": 75,
        "points_reward": 300,
    },
    "perfect_week": {
        "name": "Perfect Week",
        "description": "Complete all scheduled habits for an entire week",
        "icon": "check-circle",
        "badge_image": "/badges/perfect_week.png",
        "criteria_type": "PERFECT_WEEK",
        "criteria_value": 1,
        "xp_value": 40,
        "points_reward": 150,
    },
    "perfect_month": {
        "name": "Perfect Month",
        "description": "Complete all scheduled habits for an entire month",
        "icon": "medal",
        "badge_image": "/badges/perfect_month.png",
        "criteria_type": "PERFECT_MONTH",
        "criteria_value": 1,
        "xp_value": 100,
        "points_reward": 500,
    },
    "habit_collector": {
        "name": "Habit Collector",
        "description": "Create 5 different active habits",
        "icon": "collection",
        "badge_image": "/badges/collector.png",
        "criteria_type": "HABIT_DIVERSITY",
        "criteria_value": 5,
        "xp_value": 30,
        "points_reward": 100,
    },
    "fitness_enthusiast": {
        "name": "Fitness Enthusiast",
        "description": "Complete 50 fitness-related habits",
        "icon": "dumbbell",
        "badge_image": "/badges/fitness.png",
        "criteria_type": "DOMAIN_MASTERY",
        "criteria_value": 50,
        "xp_value": 60,
        "points_reward": 200,
        "criteria_metadata": {"domain_id": 1},
    },
    "mindfulness_guru": {
        "name": "Mindfulness Guru",
        "description": "Complete 50 mindfulness-related habits",
        "icon": "brain",
        "badge_image": "/badges/mindfulness.png",
        "criteria_type": "DOMAIN_MASTERY",
        "criteria_value": 50,
        "xp_value": 60,
        "points_reward": 200,
        "criteria_metadata": {"domain_id": 2},
    },
    "social_butterfly": {
        "name": "Social Butterfly",
        "description": "Connect with 5 friends on HabitPulse",
        "icon": "users",
        "badge_image": "/badges/social.png",
        "criteria_type": "SOCIAL_ENGAGEMENT",
        "criteria_value": 5,
        "xp_value": 40,
        "points_reward": 150,
        "criteria_metadata": {"engagement_type": "friends"},
    },
}


class AchievementCatalog:
    """
    Каталог определений ачивок. Движок только читает его;
    запись возможна лишь через seed_defaults().
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self.db: AsyncSession = db_session

    async def get(self, achievement_id: str) -> Achievement | None:
        return await self.db.get(Achievement, achievement_id)

    async def require(self, achievement_id: str) -> Achievement:
        """Как get(), но бросает AchievementNotFound для неизвестного id."""
        achievement = await self.get(achievement_id)
        if achievement is None:
            log.warning("Achievement '%s' is not in the catalog", achievement_id)
            raise AchievementNotFound(achievement_id)
        return achievement

    async def list_all(self, include_hidden: bool = False) -> Sequence[Achievement]:
        stmt = select(Achievement)
        if not include_hidden:
            stmt = stmt.where(Achievement.is_hidden.is_(False))
        stmt = stmt.order_by(Achievement.criteria_type, Achievement.criteria_value, Achievement.id)
        result = await self.db.scalars(stmt)
        return result.all()

    async def seed_defaults(self) -> list[str]:
        """
        Добавляет недостающие ачивки из DEFAULT_ACHIEVEMENTS.
        Существующие записи не трогает, повторный вызов ничего не меняет.

        Returns:
            list[str]: ID добавленных ачивок.
        """
        existing = set((await self.db.scalars(select(Achievement.id))).all())
        created: list[str] = []
        for achievement_id, fields in DEFAULT_ACHIEVEMENTS.items():
            if achievement_id in existing:
                continue
            self.db.add(Achievement(id=achievement_id, is_hidden=False, **fields))
            created.append(achievement_id)

        if created:
            await self.db.flush()
            log.info("Seeded %d default achievements: %s", len(created), created)
        else:
            log.debug("Default achievements already present, nothing to seed.")
        return created


__all__ = ["AchievementCatalog", "DEFAULT_ACHIEVEMENTS"]
