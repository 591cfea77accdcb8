# habitpulse/core/notifications/__init__.py

"""
Notifications package.

• ``NotificationsService`` – хранение уведомлений (внутри транзакции награды).
• ``get_notification_provider()`` – доставка уже сохраненных уведомлений.
"""

from .providers import BaseNotificationProvider, get_notification_provider  # noqa: F401
from .service import NotificationsService  # noqa: F401

__all__: list[str] = [
    "BaseNotificationProvider",
    "NotificationsService",
    "get_notification_provider",
]
