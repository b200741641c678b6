"""
DevConnect Backend: Health Check Route
========================================

What:  Liveness/readiness check for load balancers and monitoring.
How:   Checks both external dependencies with the cheapest call each
       offers: `SELECT 1` against the database and GET /health against the
       hosted auth API.

Status levels:
    - healthy:   database and auth API reachable (HTTP 200)
    - degraded:  auth API unreachable; public reads still work (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text

from devconnect import __version__
from devconnect.database import Store
from devconnect.dependencies import get_auth_client, get_store
from devconnect.responses import json_response
from devconnect.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(
    store: Store = Depends(get_store),
    auth_client=Depends(get_auth_client),
):
    db_status = "connected"
    auth_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with store.anonymous() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Auth API ────────────────────────────────────────────────────
    if not await auth_client.health_check():
        auth_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall

    health = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        auth_service=auth_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return json_response(health.model_dump(), status_code=503 if overall == "unhealthy" else 200)
