# habitpulse/core/achievements/__init__.py

"""
Achievements package.

• ``ProgressTracker`` – накопление прогресса и проверка порога.
• ``AwardEngine`` – атомарная выдача ачивки (награда, очки, уведомление).
• ``AchievementsService`` – фасад + чтение состояния и восстановление.
"""

from .award import AwardEngine  # noqa: F401
from .catalog import AchievementCatalog, DEFAULT_ACHIEVEMENTS  # noqa: F401
from .exceptions import (  # noqa: F401
    AchievementError,
    AchievementNotFound,
    AwardTransactionError,
    InvalidProgressRequest,
)
from .service import AchievementsService  # noqa: F401
from .tracker import ProgressTracker  # noqa: F401

__all__: list[str] = [
    "AchievementCatalog",
    "AchievementError",
    "AchievementNotFound",
    "AchievementsService",
    "AwardEngine",
    "AwardTransactionError",
    "DEFAULT_ACHIEVEMENTS",
    "InvalidProgressRequest",
    "ProgressTracker",
]
