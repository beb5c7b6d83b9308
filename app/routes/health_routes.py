"""
Health check endpoints for monitoring and load balancing.

These endpoints require no authentication so that load balancers and orchestrators can reach them.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_async_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: str
    checks: dict[str, str] | None = None


@router.get("", response_model=HealthResponse)
async def basic_health_check() -> HealthResponse:
    """Basic health check endpoint (no dependencies)."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/ready", response_model=HealthResponse)
async def readiness_check(
    session: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """
    Readiness check with a database round trip.

    Raises:
        HTTPException: 503 if the database is unreachable
    """
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.exception("Database health check failed")
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "timestamp": datetime.now(UTC).isoformat(),
                "checks": {"database": f"error: {str(e)[:100]}"},
            },
        ) from e

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC).isoformat(),
        checks={"database": "ok"},
    )
