# habitpulse/core/notifications/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    content: str
    type: str
    related_id: Optional[str] = None
    action_url: Optional[str] = None
    is_read: bool
    delivered_at: Optional[datetime] = None
    created_at: datetime


__all__ = ["NotificationOut"]
