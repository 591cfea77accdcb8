# habitpulse/core/notifications/providers/base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from habitpulse.core.notifications.models import Notification


class BaseNotificationProvider(ABC):
    """Абстрактный интерфейс доставки уведомлений (АСИНХРОННЫЙ)."""

    name: str  # Имя провайдера (e.g., 'log')

    @abstractmethod
    async def send(self, notification: "Notification") -> None:
        """
        Доставляет уже сохраненное уведомление пользователю.

        Raises:
            Exception: Любая ошибка транспорта; запись остается недоставленной.
        """
        ...


__all__ = ["BaseNotificationProvider"]
