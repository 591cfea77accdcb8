# habitpulse/core/points/service.py

"""Service-layer for the points ledger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    POINTS_TYPE_ACHIEVEMENT_REWARD,
    PointsLedgerEntry,
    UserPointsBalance,
)

log = logging.getLogger(__name__)


class PointsLedger:
    """
    Журнал очков пользователя и поддерживаемый рядом с ним итоговый баланс.

    Сервис ничего не коммитит: вызывающий код (движок наград) отвечает за
    транзакцию, в которой запись журнала и инкремент баланса либо фиксируются
    вместе, либо откатываются вместе.
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self.db: AsyncSession = db_session

    # ------------------------------------------------------------------ #
    #                       Public business-methods                      #
    # ------------------------------------------------------------------ #

    async def credit(
        self,
        user_id: str,
        points: int,
        *,
        description: str,
        type: str = POINTS_TYPE_ACHIEVEMENT_REWARD,
        source_type: str | None = None,
        source_id: str | None = None,
    ) -> PointsLedgerEntry:
        """
        Начисляет очки: атомарно увеличивает баланс и добавляет запись в журнал.

        Args:
            user_id (str): ID пользователя.
            points (int): Количество очков, строго больше нуля.
            description (str): Описание для истории начислений.
            type (str): Тип начисления (по умолчанию ACHIEVEMENT_REWARD).
            source_type (str | None): Тип источника, например 'ACHIEVEMENT'.
            source_id (str | None): ID источника.

        Returns:
            PointsLedgerEntry: Созданная запись журнала.
        """
        if points <= 0:
            raise ValueError(f"Ledger credits must be positive, got {points}")

        await self._increment_balance(user_id, points)

        entry = PointsLedgerEntry(
            user_id=user_id,
            points=points,
            type=type,
            description=description,
            source_type=source_type,
            source_id=source_id,
        )
        self.db.add(entry)
        await self.db.flush()
        log.info("Credited %d points to user %s (%s:%s)", points, user_id, source_type, source_id)
        return entry

    async def get_balance(self, user_id: str) -> int:
        stmt = select(UserPointsBalance.total_points).where(UserPointsBalance.user_id == user_id)
        total = (await self.db.execute(stmt)).scalar_one_or_none()
        return int(total or 0)

    async def ledger_total(self, user_id: str) -> int:
        """Sum of all ledger entries for the user; equals the balance after every commit."""
        stmt = select(func.coalesce(func.sum(PointsLedgerEntry.points), 0)).where(
            PointsLedgerEntry.user_id == user_id
        )
        return int((await self.db.execute(stmt)).scalar_one())

    async def list_entries(self, user_id: str, limit: int = 50) -> Sequence[PointsLedgerEntry]:
        log.debug("Listing ledger entries for user %s, limit=%d", user_id, limit)
        stmt = (
            select(PointsLedgerEntry)
            .where(PointsLedgerEntry.user_id == user_id)
            .order_by(PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc())
            .limit(limit)
        )
        result = await self.db.scalars(stmt)
        return result.all()

    # ------------------------------------------------------------------ #
    #                              Helpers                               #
    # ------------------------------------------------------------------ #

    async def _increment_balance(self, user_id: str, points: int) -> None:
        # Инкремент выполняется в SQL (total = total + n), без чтения в Python
        stmt = (
            update(UserPointsBalance)
            .where(UserPointsBalance.user_id == user_id)
            .values(
                total_points=UserPointsBalance.total_points + points,
                updated_at=datetime.now(timezone.utc),
            )
        )
        result = await self.db.execute(stmt)
        if result.rowcount:
            return

        log.debug("No balance row for user %s yet, creating one", user_id)
        try:
            async with self.db.begin_nested():
                self.db.add(UserPointsBalance(user_id=user_id, total_points=points))
        except IntegrityError:
            # Параллельный запрос успел создать строку баланса первым
            log.info("Balance row for user %s was created concurrently, retrying increment", user_id)
            await self.db.execute(stmt)


__all__ = ["PointsLedger"]
