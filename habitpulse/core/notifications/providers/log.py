# habitpulse/core/notifications/providers/log.py

from __future__ import annotations

import logging

from habitpulse.core.notifications.models import Notification

from .base import BaseNotificationProvider

log = logging.getLogger(__name__)


class LogNotificationProvider(BaseNotificationProvider):
    """
    Провайдер-заглушка: вместо push-доставки пишет уведомление в лог.
    Запоминает отправленные ID (удобно в тестах).
    """

    name: str = "log"

    def __init__(self) -> None:
        self.sent_ids: list[int] = []
        log.info("Initialized LogNotificationProvider")

    async def send(self, notification: Notification) -> None:
        log.info(
            "Log: notification id=%s for user %s: %s | %s",
            notification.id, notification.user_id, notification.title, notification.content,
        )
        self.sent_ids.append(notification.id)


__all__ = ["LogNotificationProvider"]
