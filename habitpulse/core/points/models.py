# habitpulse/core/points/models.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from habitpulse.db.base import Base

POINTS_TYPE_ACHIEVEMENT_REWARD = "ACHIEVEMENT_REWARD"
SOURCE_TYPE_ACHIEVEMENT = "ACHIEVEMENT"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PointsLedgerEntry(Base):
    """
    Запись журнала начисления очков. Только добавление, без изменений.
    """
    __tablename__ = "points_ledger"
    __table_args__ = (
        Index("ix_points_ledger_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default=POINTS_TYPE_ACHIEVEMENT_REWARD)
    description: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    # Откуда пришли очки (например, 'ACHIEVEMENT' + id ачивки)
    source_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    source_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<PointsLedgerEntry id={self.id} user='{self.user_id}' points={self.points} type='{self.type}'>"


class UserPointsBalance(Base):
    """Running point total per user, kept equal to the sum of the ledger."""
    __tablename__ = "user_points_balances"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<UserPointsBalance user='{self.user_id}' total={self.total_points}>"


__all__ = [
    "PointsLedgerEntry",
    "UserPointsBalance",
    "POINTS_TYPE_ACHIEVEMENT_REWARD",
    "SOURCE_TYPE_ACHIEVEMENT",
]
