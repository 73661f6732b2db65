"""
Health check endpoints.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Request
from motor.motor_asyncio import AsyncIOMotorClient
from pydantic import BaseModel

from ... import __version__
from ...core.config import get_settings
from ..schemas.common import ApiResponse
from ..utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

READINESS_PING_TIMEOUT_MS = 2000


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime
    version: str
    service: str


@router.get("", response_model=ApiResponse[HealthResponse])
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns the current status of the service.
    """
    settings = get_settings()
    return ok(request, data=HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=__version__,
        service=settings.app_name,
    ), message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Pings MongoDB; reports ``degraded`` rather than failing when it is down.
    """
    settings = get_settings()
    checks = {}

    client = AsyncIOMotorClient(
        settings.database.uri, serverSelectionTimeoutMS=READINESS_PING_TIMEOUT_MS
    )
    try:
        await client.admin.command("ping")
        checks["database"] = "ok"
    except Exception as e:
        logger.warning(f"Readiness ping failed: {e}")
        checks["database"] = f"error: {str(e)[:50]}"
    finally:
        client.close()

    checks["mail_backend"] = settings.mail.backend
    all_ok = checks["database"] == "ok"

    return ok(request, data={
        "status": "ready" if all_ok else "degraded",
        "timestamp": datetime.utcnow(),
        "checks": checks,
    }, message="OK" if all_ok else "Some services unavailable")


@router.get("/live", response_model=ApiResponse[dict])
async def liveness_check(request: Request):
    """Liveness check endpoint."""
    return ok(request, data={"status": "alive", "timestamp": datetime.utcnow()}, message="OK")
