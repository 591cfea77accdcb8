# habitpulse/core/points/__init__.py

"""
Points package: журнал начислений и баланс пользователя.
"""

from .service import PointsLedger  # noqa: F401

__all__: list[str] = ["PointsLedger"]
