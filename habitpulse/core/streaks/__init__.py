# habitpulse/core/streaks/__init__.py

from .base import NullStreakCalculator, ProgressDelta, StreakCalculator  # noqa: F401

__all__: list[str] = ["NullStreakCalculator", "ProgressDelta", "StreakCalculator"]
