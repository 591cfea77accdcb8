# habitpulse/core/achievements/models.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON, Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from habitpulse.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Achievement(Base):
    """
    Определение ачивки из каталога. Для движка наград только для чтения.
    """
    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Stable achievement slug")
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    icon: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    badge_image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    criteria_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    # Порог: ачивка выдается, когда current_value >= criteria_value
    criteria_value: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    criteria_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Achievement id='{self.id}' type='{self.criteria_type}' threshold={self.criteria_value}>"


class AchievementProgress(Base):
    """
    Накопленный прогресс пользователя по одной ачивке.

    Живет только до выдачи ачивки: в той же транзакции, где создается
    UserAchievement, запись удаляется.
    """
    __tablename__ = "achievement_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_achievement_progress_user_achievement"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target_value: Mapped[int] = mapped_column(Integer, nullable=False)
    percent_complete: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<AchievementProgress user='{self.user_id}' achievement='{self.achievement_id}' "
            f"{self.current_value}/{self.target_value} ({self.percent_complete}%)>"
        )


class UserAchievement(Base):
    """Permanent award record. Created once per (user, achievement), never updated."""
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    award_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<UserAchievement id={self.id} user='{self.user_id}' achievement='{self.achievement_id}'>"


__all__ = ["Achievement", "AchievementProgress", "UserAchievement"]
