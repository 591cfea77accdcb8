# habitpulse/config.py

from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Единый конфиг проекта. Читает переменные окружения.
    Pydantic v2 + pydantic-settings.
    """
    model_config = SettingsConfigDict(
        case_sensitive=False,  # Имена переменных окружения не чувствительны к регистру
        extra="ignore",
    )

    # --- Основные настройки ---
    ENVIRONMENT: str = Field("dev", description="Application environment (dev, test, prod)")
    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    # --- База данных ---
    DATABASE_URL: str = Field(..., description="Async database connection URL (e.g., postgresql+asyncpg://...)")
    # Celery-воркеры запускают каждую задачу в новом event loop, пул соединений им не подходит
    DATABASE_NULL_POOL: bool = Field(False, description="Disable connection pooling (set in Celery workers)")

    # --- Redis / Celery ---
    REDIS_URL: str = Field("redis://redis:6379/0", description="URL for Redis connection")
    CELERY_BROKER_URL: Optional[str] = Field(None, description="Celery broker URL (defaults to REDIS_URL)")
    CELERY_RESULT_BACKEND: Optional[str] = Field(None, description="Celery result backend URL (defaults to REDIS_URL)")

    # --- Ачивки и уведомления ---
    NOTIFICATION_PROVIDER: str = Field("log", description="Notification delivery provider ('log')")
    ACHIEVEMENTS_ACTION_URL: str = Field("/achievements", description="Deep link attached to unlock notifications")
    SEED_ACHIEVEMENTS_ON_STARTUP: bool = Field(True, description="Insert missing default achievements on startup")

    @model_validator(mode='after')
    def set_celery_defaults(self) -> 'Settings':
        if self.CELERY_BROKER_URL is None:
            log.debug("Setting CELERY_BROKER_URL default from REDIS_URL")
            self.CELERY_BROKER_URL = self.REDIS_URL
        if self.CELERY_RESULT_BACKEND is None:
            log.debug("Setting CELERY_RESULT_BACKEND default from REDIS_URL")
            self.CELERY_RESULT_BACKEND = self.REDIS_URL
        return self


try:
    settings = Settings()
    log.info("Settings loaded successfully for ENVIRONMENT=%s", settings.ENVIRONMENT)
    log.debug(
        "Loaded settings: DB URL=%s..., Redis URL=%s, Notification provider=%s",
        settings.DATABASE_URL[:25], settings.REDIS_URL, settings.NOTIFICATION_PROVIDER,
    )
except Exception:
    log.exception("Failed to instantiate Settings.")
    raise
