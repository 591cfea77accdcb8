# habitpulse/api/v1/points_api.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.core.points.schemas import LedgerEntryOut, PointsBalanceOut
from habitpulse.core.points.service import PointsLedger
from habitpulse.db.base import get_async_db_session

router = APIRouter(prefix="/v1/points", tags=["Points"])
log = logging.getLogger(__name__)


@router.get("/{user_id}", response_model=PointsBalanceOut, summary="Get points balance and recent ledger entries")
async def get_points(
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_async_db_session),
) -> PointsBalanceOut:
    ledger = PointsLedger(db)
    entries = await ledger.list_entries(user_id, limit=limit)
    return PointsBalanceOut(
        user_id=user_id,
        total_points=await ledger.get_balance(user_id),
        entries=[LedgerEntryOut.model_validate(e) for e in entries],
    )
