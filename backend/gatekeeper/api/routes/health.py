"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /api/v1/health/ always returns 200 if process is up (liveness)
    - GET /api/v1/health/ready returns 503 if the database is unreachable (readiness)
    - The profile service being offline does not fail readiness; it only blocks new sessions
"""

import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from gatekeeper.api.dependencies import get_profiles, get_registry
from gatekeeper.core.repository_protocols import ProfileService
from gatekeeper.core.session_registry import SessionRegistry
from gatekeeper.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "gatekeeper-verify",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(
    registry: SessionRegistry = Depends(get_registry),
    profiles: ProfileService = Depends(get_profiles),
):
    """Readiness probe — includes database connectivity."""
    db_ok = await database.db_manager.health_check() if database.db_manager else False
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )
    profiles_ok = await profiles.is_online()
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "profile_service": "online" if profiles_ok else "offline",
        },
        "active_sessions": len(registry),
    }
