# habitpulse/workers/tasks.py

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable

from celery import Celery
from celery.exceptions import Ignore
from celery.utils.log import get_task_logger
from kombu.exceptions import OperationalError

from habitpulse.config import settings
from habitpulse.core.achievements.service import AchievementsService
from habitpulse.core.notifications.providers import get_notification_provider
from habitpulse.core.notifications.service import NotificationsService
from habitpulse.db.base import async_session_context

log = get_task_logger(__name__)

celery_app = Celery(
    "habitpulse",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=['habitpulse.workers.tasks'],
    task_serializer='json',
    result_serializer='json',
    accept_content=['json']
)
celery_app.conf.update(
    task_track_started=True,
    timezone='UTC',
    broker_connection_retry_on_startup=True,
)


# --- Доставка уведомлений ---
async def _run_deliver_notification_logic(notification_id: int, task_id: str | None = None) -> str:
    """
    Отправляет сохраненное уведомление через провайдер и отмечает delivered_at.
    Ошибка провайдера пробрасывается (Celery повторит задачу), запись остается недоставленной.
    """
    log.info("[deliver %s] Delivering notification id=%s", task_id, notification_id)
    async with async_session_context() as session:
        notifications = NotificationsService(session)
        notification = await notifications.get_notification(notification_id)
        if notification is None:
            log.error("[deliver %s] Notification id=%s not found. Ignoring.", task_id, notification_id)
            raise Ignore()
        if notification.delivered_at is not None:
            log.warning("[deliver %s] Notification id=%s already delivered. Skipping.", task_id, notification_id)
            return f"ALREADY_DELIVERED:{notification_id}"

        provider = get_notification_provider()
        await provider.send(notification)
        await notifications.mark_delivered(notification_id)

    log.info("[deliver %s] Notification id=%s delivered via '%s'", task_id, notification_id, provider.name)
    return f"DELIVERED:{notification_id}"


@celery_app.task(
    name="habitpulse.workers.tasks.deliver_notification_task",
    bind=True,
    autoretry_for=(Exception,),
    retry_kwargs={'max_retries': 3},
    retry_backoff=True,
    retry_backoff_max=60 * 5,
    retry_jitter=True
)
def deliver_notification_task(self, notification_id: int) -> str:
    """Celery задача: sync обертка над асинхронной доставкой."""
    return asyncio.run(_run_deliver_notification_logic(notification_id, self.request.id))


# --- Восстановление прогресса ---
async def _run_repair_progress_logic(user_id: str, task_id: str | None = None) -> Dict[str, Any]:
    log.info("[repair %s] Repairing achievement progress for user '%s'", task_id, user_id)
    async with async_session_context() as session:
        report = await AchievementsService(session).repair_progress(user_id)
    return report.model_dump()


@celery_app.task(name="habitpulse.workers.tasks.repair_progress_task", bind=True)
def repair_progress_task(self, user_id: str) -> Dict[str, Any]:
    return asyncio.run(_run_repair_progress_logic(user_id, self.request.id))


def enqueue_notification_delivery(notification_ids: Iterable[int]) -> int:
    """
    Ставит доставку уведомлений в очередь. Вызывается после коммита транзакции,
    иначе воркер может не увидеть запись.

    Returns:
        int: Сколько задач поставлено.
    """
    queued = 0
    for notification_id in notification_ids:
        try:
            deliver_notification_task.delay(notification_id)
            queued += 1
        except OperationalError:
            # Брокер недоступен: уведомление сохранено и останется недоставленным
            log.exception("Failed to enqueue delivery for notification id=%s", notification_id)
    return queued


__all__ = [
    "celery_app",
    "deliver_notification_task",
    "repair_progress_task",
    "enqueue_notification_delivery",
]
