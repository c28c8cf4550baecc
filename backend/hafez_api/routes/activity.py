"""
Hafez Quraan Backend — Activity Routes
========================================

What:  POST /log-activity (append an event) and GET /analytics (rollups).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hafez_api.database import get_db_session
from hafez_api.schemas.activity import LogActivityRequest
from hafez_api.schemas.analytics import AnalyticsResponse
from hafez_api.schemas.common import ErrorResponse, MessageResponse
from hafez_api.services.activity_service import activity_service
from hafez_api.services.analytics_service import MAX_RECENT_ACTIVITY, analytics_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Activity"])


@router.post(
    "/log-activity",
    response_model=MessageResponse,
    responses={
        400: {"description": "Missing email or activity type", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Record an activity event",
)
async def log_activity(
    body: LogActivityRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await activity_service.log_activity(
        db,
        email=body.email,
        activity_type=body.activity_type,
        metadata=body.metadata,
        timestamp=body.timestamp,
    )
    return MessageResponse(message="Activity logged successfully")


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    responses={500: {"description": "Storage failure", "model": ErrorResponse}},
    summary="Usage rollups",
    description=(
        "User counts, active users today / this week, the most recent events "
        "(optionally limited to today, week or month) and a per-user progress summary."
    ),
)
async def get_analytics(
    timeframe: Optional[str] = Query(
        default=None,
        description="'today', 'week' or 'month'. Any other value means no filter.",
    ),
    limit: int = Query(default=MAX_RECENT_ACTIVITY, ge=1, le=MAX_RECENT_ACTIVITY),
    db: AsyncSession = Depends(get_db_session),
) -> AnalyticsResponse:
    return await analytics_service.get_analytics(db, timeframe=timeframe, limit=limit)
