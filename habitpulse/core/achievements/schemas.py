# habitpulse/core/achievements/schemas.py

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Коды и статусы ---
class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"
    TRANSACTION_FAILURE = "TRANSACTION_FAILURE"


class ProgressStatus(str, Enum):
    """Итог одного вызова add_progress."""
    ALREADY_AWARDED = "ALREADY_AWARDED"
    PROGRESS_UPDATED = "PROGRESS_UPDATED"
    AWARDED = "AWARDED"
    FAILED = "FAILED"


class AwardStatus(str, Enum):
    AWARDED = "AWARDED"
    ALREADY_AWARDED = "ALREADY_AWARDED"


class ProgressState(str, Enum):
    """Состояние пары (пользователь, ачивка) для чтения."""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# --- ORM -> API ---
class AchievementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    icon: Optional[str] = None
    badge_image: Optional[str] = None
    criteria_type: str
    criteria_value: int
    xp_value: int
    points_reward: int
    is_hidden: bool


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    achievement_id: str
    current_value: int
    target_value: int
    percent_complete: int
    last_updated: datetime


class AwardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    achievement_id: str
    awarded_at: datetime
    points_awarded: int
    award_metadata: Optional[Dict[str, Any]] = None


# --- Результаты операций ---
class AwardResult(BaseModel):
    status: AwardStatus
    award: AwardOut
    points_awarded: int = 0
    notification_id: Optional[int] = None


class ProgressResult(BaseModel):
    """
    Результат add_progress. При FAILED заполнены error_code и message,
    при AWARDED поле award, при PROGRESS_UPDATED поле progress.
    """
    achievement_id: str
    status: ProgressStatus
    progress: Optional[ProgressOut] = None
    award: Optional[AwardResult] = None
    error_code: Optional[ErrorCode] = None
    message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status != ProgressStatus.FAILED


class BulkProgressItem(BaseModel):
    achievement_id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0)


class BulkProgressResult(BaseModel):
    results: List[ProgressResult]
    total_updates: int
    successful_updates: int


class AchievementProgressView(BaseModel):
    """Ответ get_progress: состояние + определение ачивки."""
    state: ProgressState
    achievement: AchievementOut
    current_value: int = 0
    target_value: int
    percent_complete: int = 0
    last_updated: Optional[datetime] = None
    awarded_at: Optional[datetime] = None


class RepairReport(BaseModel):
    user_id: str
    removed_progress: List[str] = Field(default_factory=list)
    refreshed_progress: List[str] = Field(default_factory=list)
    awarded: List[str] = Field(default_factory=list)
    notification_ids: List[int] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)


# --- Тела запросов API ---
class ProgressRequest(BaseModel):
    amount: int = Field(..., ge=0, description="Non-negative increment")


class BulkProgressRequest(BaseModel):
    updates: List[BulkProgressItem]


class AwardRequest(BaseModel):
    metadata: Optional[Dict[str, Any]] = None


__all__ = [
    "ErrorCode", "ProgressStatus", "AwardStatus", "ProgressState",
    "AchievementOut", "ProgressOut", "AwardOut",
    "AwardResult", "ProgressResult", "BulkProgressItem", "BulkProgressResult",
    "AchievementProgressView", "RepairReport",
    "ProgressRequest", "BulkProgressRequest", "AwardRequest",
]
