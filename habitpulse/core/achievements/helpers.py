# habitpulse/core/achievements/helpers.py

from __future__ import annotations

from .exceptions import InvalidProgressRequest


def compute_percent(current_value: int, target_value: int) -> int:
    """floor(current / target * 100), не больше 100. Неположительная цель считается выполненной."""
    if target_value <= 0:
        return 100
    return min(100, (current_value * 100) // target_value)


def validate_ids(user_id: str, achievement_id: str) -> None:
    if not user_id or not str(user_id).strip():
        raise InvalidProgressRequest("user_id is required")
    if not achievement_id or not str(achievement_id).strip():
        raise InvalidProgressRequest("achievement_id is required")


__all__ = ["compute_percent", "validate_ids"]
