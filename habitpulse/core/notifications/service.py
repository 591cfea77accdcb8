# habitpulse/core/notifications/service.py

"""Service-layer for Notifications."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Notification

log = logging.getLogger(__name__)


class NotificationsService:
    """
    Асинхронный сервис для работы с уведомлениями.
    Использует внедрение зависимостей (DI) для получения AsyncSession.
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self.db: AsyncSession = db_session

    async def create_notification(
        self,
        user_id: str,
        title: str,
        content: str,
        type: str,
        related_id: str | None = None,
        action_url: str | None = None,
    ) -> Notification:
        """
        Сохраняет уведомление. Доставка выполняется отдельно, после коммита.

        Args:
            user_id (str): Получатель.
            title (str): Заголовок.
            content (str): Текст уведомления.
            type (str): Тип, например 'ACHIEVEMENT_UNLOCKED'.
            related_id (str | None): ID связанной сущности (ачивки).
            action_url (str | None): Ссылка для перехода в приложении.

        Returns:
            Notification: Созданная запись (ORM модель).
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            content=content,
            type=type,
            related_id=related_id,
            action_url=action_url,
        )
        self.db.add(notification)
        await self.db.flush()
        log.info("Created notification id=%d (%s) for user %s", notification.id, type, user_id)
        return notification

    async def get_notification(self, notification_id: int) -> Notification | None:
        return await self.db.get(Notification, notification_id)

    async def list_for_user(
        self, user_id: str, limit: int = 50, unread_only: bool = False
    ) -> Sequence[Notification]:
        log.debug("Listing notifications for user %s (unread_only=%s)", user_id, unread_only)
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        result = await self.db.scalars(stmt)
        return result.all()

    async def mark_delivered(self, notification_id: int) -> Notification | None:
        """
        Помечает уведомление как доставленное.

        Returns:
            Notification | None: Обновленная запись или None, если не найдена.
        """
        notification = await self.db.get(Notification, notification_id)
        if notification is None:
            log.warning("Notification id=%d not found to mark as delivered.", notification_id)
            return None
        if notification.delivered_at is None:
            notification.delivered_at = datetime.now(timezone.utc)
            await self.db.flush()
            log.info("Marked notification id=%d as delivered", notification_id)
        else:
            log.warning("Notification id=%d was already delivered.", notification_id)
        return notification


__all__ = ["NotificationsService"]
