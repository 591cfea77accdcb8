# habitpulse/main.py

from __future__ import annotations

import logging

from fastapi import FastAPI, status

from habitpulse.api.v1.achievements_api import router as achievements_router
from habitpulse.api.v1.health import router as health_router
from habitpulse.api.v1.notifications_api import router as notifications_router
from habitpulse.api.v1.points_api import router as points_router
from habitpulse.config import settings
from habitpulse.core.achievements.catalog import AchievementCatalog
from habitpulse.db.base import async_session_context

# Configure basic logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
log = logging.getLogger(__name__)

description = "HabitPulse achievements backend: progress tracking, awards, points and notifications."
tags_metadata = [
    {"name": "Achievements", "description": "Progress, awards and per-user achievement state."},
    {"name": "Points", "description": "Points balance and ledger history."},
    {"name": "Notifications", "description": "Achievement unlock notifications."},
    {"name": "Health", "description": "Liveness and dependency checks."},
]

app = FastAPI(
    title="HabitPulse Achievements API",
    description=description,
    version="0.3.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
)

app.include_router(health_router)
app.include_router(achievements_router)
app.include_router(points_router)
app.include_router(notifications_router)

log.info("\U0001F331 FastAPI application configured. Environment: %s", settings.ENVIRONMENT)


@app.on_event("startup")
async def startup_event() -> None:
    if settings.SEED_ACHIEVEMENTS_ON_STARTUP:
        async with async_session_context() as session:
            created = await AchievementCatalog(session).seed_defaults()
        log.info("Default achievements seeded: %d new", len(created))
    log.info("\U0001F680 FastAPI application startup complete.")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    log.info("\U0001F44B FastAPI application shutdown.")


@app.get("/healthz", tags=["Health"], status_code=status.HTTP_200_OK)
async def health_check():
    """Basic health check endpoint."""
    return {"status": "ok", "environment": settings.ENVIRONMENT}
