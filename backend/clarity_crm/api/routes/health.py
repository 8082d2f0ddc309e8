"""Health Probes - liveness for the process, readiness for the database.

Invariants:
    - GET /api/health/ answers 200 without touching the database
    - GET /api/health/ready answers 503 while the database is unreachable
    - The AI insights flag is reported but never affects readiness; the
      insights endpoint degrades to the rule-based summary on its own
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from clarity_crm.config import Settings, get_settings
from clarity_crm.infrastructure import database
from clarity_crm.infrastructure.observability import SERVICE_NAME

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def liveness(settings: Settings = Depends(get_settings)):
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": settings.app_version,
    }


@router.get("/ready")
async def readiness(settings: Settings = Depends(get_settings)):
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        logger.warning("Not ready: database unreachable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "ai_insights": "enabled" if settings.ai_insights_enabled else "disabled",
        },
    }
