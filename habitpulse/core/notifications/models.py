# habitpulse/core/notifications/models.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from habitpulse.db.base import Base

NOTIFICATION_TYPE_ACHIEVEMENT_UNLOCKED = "ACHIEVEMENT_UNLOCKED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Notification(Base):
    """
    ORM модель уведомления пользователя.

    Запись создается внутри транзакции выдачи ачивки; доставка (push и т. п.)
    выполняется позже фоновой задачей и отмечается в ``delivered_at``.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    related_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    action_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Notification id={self.id} user='{self.user_id}' type='{self.type}' delivered={self.delivered_at is not None}>"


__all__ = ["Notification", "NOTIFICATION_TYPE_ACHIEVEMENT_UNLOCKED"]
