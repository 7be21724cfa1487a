"""Health check routes."""

from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text

from services.cloud_storage.app.dependencies import DBSession
from shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"]
    service: str
    version: str = "0.1.0"


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check - returns if the service is running."""
    return HealthResponse(status="healthy", service="cloud-storage")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request, db: DBSession) -> ReadinessResponse:
    """Readiness check - verifies the database and Redis are reachable."""
    checks = {"database": True, "redis": True}

    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("readiness_database_failed", error=str(e))
        checks["database"] = False

    try:
        await request.app.state.redis.ping()
    except Exception as e:
        logger.warning("readiness_redis_failed", error=str(e))
        checks["redis"] = False

    return ReadinessResponse(ready=all(checks.values()), checks=checks)
