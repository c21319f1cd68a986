"""
Best Bike Paths Backend - Health Check Route
=============================================

What:  Health check for Docker, load balancers and monitoring.
How:   SELECT 1 against the database; the geocoder reports its circuit state
       without calling the provider.

Status levels:
    - healthy:   database reachable, geocoder circuit closed
    - degraded:  database reachable, geocoder circuit open (search fails,
                 everything else works)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from bbp import __version__
from bbp.database import engine
from bbp.schemas.common import HealthResponse
from bbp.services.geocoding_service import geocoding_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    geocoder_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Geocoder ────────────────────────────────────────────────────
    if not await geocoding_service.health_check():
        geocoder_status = "circuit_open"
        overall = "degraded" if overall != "unhealthy" else overall

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geocoder=geocoder_status,
        geocoder_circuit=geocoding_service.circuit_state(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
