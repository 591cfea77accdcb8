# habitpulse/api/v1/achievements_api.py

from __future__ import annotations

import logging
from typing import List, NoReturn

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.core.achievements.catalog import AchievementCatalog
from habitpulse.core.achievements.exceptions import AchievementError
from habitpulse.core.achievements.schemas import (
    AchievementOut,
    AchievementProgressView,
    AwardOut,
    AwardRequest,
    AwardResult,
    BulkProgressRequest,
    BulkProgressResult,
    ErrorCode,
    ProgressRequest,
    ProgressResult,
    ProgressStatus,
    RepairReport,
)
from habitpulse.core.achievements.service import AchievementsService
from habitpulse.db.base import get_async_db_session
from habitpulse.workers.tasks import enqueue_notification_delivery

router = APIRouter(
    prefix="/v1/achievements",
    tags=["Achievements"],
)
log = logging.getLogger(__name__)

_HTTP_STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_REQUEST: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.TRANSACTION_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _raise_http(code: ErrorCode, message: str | None) -> NoReturn:
    raise HTTPException(status_code=_HTTP_STATUS_BY_CODE[code], detail=message or code.value)


async def _commit_and_deliver(
    db: AsyncSession, background_tasks: BackgroundTasks, notification_ids: List[int]
) -> None:
    # Доставка только после коммита: воркер должен видеть запись уведомления
    await db.commit()
    if notification_ids:
        background_tasks.add_task(enqueue_notification_delivery, notification_ids)


# --- Каталог ---
@router.get(
    "",
    response_model=List[AchievementOut],
    summary="List achievements",
    description="Returns the visible achievement catalog (hidden achievements only with include_hidden=true).",
)
async def list_achievements(
    include_hidden: bool = Query(False),
    db: AsyncSession = Depends(get_async_db_session),
) -> List[AchievementOut]:
    achievements = await AchievementCatalog(db).list_all(include_hidden=include_hidden)
    return [AchievementOut.model_validate(a) for a in achievements]


# --- Чтение состояния пользователя ---
@router.get(
    "/users/{user_id}",
    response_model=List[AchievementProgressView],
    summary="Get user achievement overview",
)
async def get_user_overview(
    user_id: str,
    include_hidden: bool = Query(False),
    db: AsyncSession = Depends(get_async_db_session),
) -> List[AchievementProgressView]:
    log.info("API: Overview requested for user '%s'", user_id)
    return await AchievementsService(db).list_user_progress(user_id, include_hidden=include_hidden)


@router.get(
    "/users/{user_id}/awards",
    response_model=List[AwardOut],
    summary="Get user awards",
)
async def get_user_awards(
    user_id: str,
    db: AsyncSession = Depends(get_async_db_session),
) -> List[AwardOut]:
    awards = await AchievementsService(db).list_user_awards(user_id)
    return [AwardOut.model_validate(a) for a in awards]


@router.post(
    "/users/{user_id}/progress/bulk",
    response_model=BulkProgressResult,
    summary="Add progress to several achievements",
)
async def add_progress_bulk(
    user_id: str,
    body: BulkProgressRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_async_db_session),
) -> BulkProgressResult:
    log.info("API: Bulk progress for user '%s': %d updates", user_id, len(body.updates))
    result = await AchievementsService(db).add_progress_bulk(user_id, body.updates)
    notification_ids = [
        r.award.notification_id
        for r in result.results
        if r.status == ProgressStatus.AWARDED and r.award and r.award.notification_id is not None
    ]
    await _commit_and_deliver(db, background_tasks, notification_ids)
    return result


@router.post(
    "/users/{user_id}/repair",
    response_model=RepairReport,
    summary="Repair progress/award inconsistencies for a user",
)
async def repair_progress(
    user_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_async_db_session),
) -> RepairReport:
    report = await AchievementsService(db).repair_progress(user_id)
    await _commit_and_deliver(db, background_tasks, report.notification_ids)
    return report


@router.get(
    "/users/{user_id}/{achievement_id}",
    response_model=AchievementProgressView,
    summary="Get progress state for one achievement",
)
async def get_progress(
    user_id: str,
    achievement_id: str,
    db: AsyncSession = Depends(get_async_db_session),
) -> AchievementProgressView:
    try:
        return await AchievementsService(db).get_progress(user_id, achievement_id)
    except AchievementError as e:
        _raise_http(e.code, e.message)


# --- Запись ---
@router.post(
    "/users/{user_id}/{achievement_id}/progress",
    response_model=ProgressResult,
    summary="Add progress",
    description="Adds a non-negative increment; awards the achievement when the threshold is reached.",
)
async def add_progress(
    user_id: str,
    achievement_id: str,
    body: ProgressRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_async_db_session),
) -> ProgressResult:
    log.info("API: +%d progress for user '%s' on '%s'", body.amount, user_id, achievement_id)
    result = await AchievementsService(db).add_progress(user_id, achievement_id, body.amount)
    if result.status == ProgressStatus.FAILED:
        _raise_http(result.error_code or ErrorCode.TRANSACTION_FAILURE, result.message)

    notification_ids: List[int] = []
    if result.award and result.award.notification_id is not None:
        notification_ids.append(result.award.notification_id)
    await _commit_and_deliver(db, background_tasks, notification_ids)
    return result


@router.post(
    "/users/{user_id}/{achievement_id}/award",
    response_model=AwardResult,
    summary="Award an achievement directly",
)
async def award_achievement(
    user_id: str,
    achievement_id: str,
    background_tasks: BackgroundTasks,
    body: AwardRequest | None = None,
    db: AsyncSession = Depends(get_async_db_session),
) -> AwardResult:
    log.info("API: Direct award of '%s' to user '%s'", achievement_id, user_id)
    try:
        result = await AchievementsService(db).award(
            user_id, achievement_id, metadata=body.metadata if body else None
        )
    except AchievementError as e:
        log.warning("API: Award of '%s' to '%s' failed: %s", achievement_id, user_id, e.message)
        _raise_http(e.code, e.message)

    notification_ids = [result.notification_id] if result.notification_id is not None else []
    await _commit_and_deliver(db, background_tasks, notification_ids)
    return result
