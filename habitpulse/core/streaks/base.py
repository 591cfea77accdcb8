# habitpulse/core/streaks/base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ProgressDelta:
    """Инкремент прогресса, вычисленный из события выполнения привычки."""
    achievement_id: str
    amount: int


class StreakCalculator(ABC):
    """
    Абстрактный интерфейс расчета серий (streaks).

    Алгоритм (расписание привычки, часовые пояса, пропуски) живет вне
    движка ачивок; движок получает только готовый ProgressDelta.
    """

    name: str

    @abstractmethod
    def compute_streak_delta(self, habit: Any, completion_event: Any) -> ProgressDelta | None:
        """
        Returns:
            ProgressDelta | None: Что добавить к прогрессу, или None, если ничего.
        """
        ...


class NullStreakCalculator(StreakCalculator):
    """Калькулятор по умолчанию: никогда не выдает прогресс."""

    name = "null"

    def compute_streak_delta(self, habit: Any, completion_event: Any) -> ProgressDelta | None:
        return None


__all__ = ["ProgressDelta", "StreakCalculator", "NullStreakCalculator"]
