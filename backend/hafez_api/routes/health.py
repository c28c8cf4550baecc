"""
Hafez Quraan Backend — Liveness Routes
========================================

What:  GET / (service descriptor) and GET /health (liveness + uptime).
Why:   Hosting platforms probe these to decide whether to route traffic.
How:   Neither endpoint touches the database or the mail provider; they
       only prove the process is up and serving requests.
"""

import time

from fastapi import APIRouter

from hafez_api.database import utcnow
from hafez_api.schemas.common import HealthResponse, RootResponse

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.monotonic()


@router.get("/", response_model=RootResponse, summary="Service descriptor")
async def root() -> RootResponse:
    return RootResponse()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Returns status, current server time and process uptime in seconds.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="OK",
        timestamp=utcnow(),
        uptime=round(time.monotonic() - _start_time, 2),
    )
