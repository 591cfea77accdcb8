# habitpulse/core/achievements/exceptions.py

"""Domain errors of the achievements engine."""

from __future__ import annotations

from .schemas import ErrorCode


class AchievementError(Exception):
    """Базовая ошибка движка ачивок. Несет машиночитаемый код."""

    code: ErrorCode = ErrorCode.TRANSACTION_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AchievementNotFound(AchievementError):
    code = ErrorCode.NOT_FOUND

    def __init__(self, achievement_id: str) -> None:
        super().__init__(f"Achievement '{achievement_id}' not found")
        self.achievement_id = achievement_id


class InvalidProgressRequest(AchievementError):
    code = ErrorCode.INVALID_REQUEST


class AwardTransactionError(AchievementError):
    """Транзакция выдачи ачивки откатилась; исходная ошибка в ``__cause__``."""

    code = ErrorCode.TRANSACTION_FAILURE


__all__ = [
    "AchievementError",
    "AchievementNotFound",
    "InvalidProgressRequest",
    "AwardTransactionError",
]
