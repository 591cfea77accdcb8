# habitpulse/api/v1/notifications_api.py

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.core.notifications.schemas import NotificationOut
from habitpulse.core.notifications.service import NotificationsService
from habitpulse.db.base import get_async_db_session

router = APIRouter(prefix="/v1/notifications", tags=["Notifications"])
log = logging.getLogger(__name__)


@router.get("/{user_id}", response_model=List[NotificationOut], summary="List user notifications")
async def list_notifications(
    user_id: str,
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_async_db_session),
) -> List[NotificationOut]:
    notifications = await NotificationsService(db).list_for_user(user_id, limit=limit, unread_only=unread_only)
    return [NotificationOut.model_validate(n) for n in notifications]
