# habitpulse/core/points/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class LedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    points: int
    type: str
    description: str
    source_type: Optional[str] = None
    source_id: Optional[str] = None
    created_at: datetime


class PointsBalanceOut(BaseModel):
    user_id: str
    total_points: int
    entries: List[LedgerEntryOut]


__all__ = ["LedgerEntryOut", "PointsBalanceOut"]
