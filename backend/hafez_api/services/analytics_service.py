"""
Hafez Quraan Backend — Analytics Service (read-only rollups)
==============================================================

What:  Aggregates over users, verse_progress, recited_pages and activity_logs
       for GET /analytics.
How:   Five queries per call, recomputed every time. Nothing is cached and
       nothing is written.

Rollups:
    total_users      COUNT(users)
    active_today     COUNT(DISTINCT user_email) since UTC midnight
    active_week      COUNT(DISTINCT user_email) in the trailing 7 days
    recent_activity  newest events first, optional timeframe filter, ≤ 50 rows
    user_progress    per-user counts via correlated scalar subqueries,
                     ordered by last_active DESC with never-active users last
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hafez_api.database import as_utc, utcnow
from hafez_api.exceptions import StorageError
from hafez_api.models import ActivityLog, RecitedPage, User, VerseProgress
from hafez_api.schemas.analytics import ActivityItem, AnalyticsResponse, UserProgressItem

logger = logging.getLogger(__name__)

MAX_RECENT_ACTIVITY = 50

# Trailing windows for the `timeframe` filter; "today" is calendar-based
TIMEFRAME_WINDOWS = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def timeframe_start(timeframe: Optional[str], now: datetime) -> Optional[datetime]:
    """
    Lower bound for `timeframe`, or None for no filter.

    Unrecognized values are treated as "no filter" rather than an error.
    """
    if timeframe == "today":
        return start_of_day(now)
    window = TIMEFRAME_WINDOWS.get(timeframe or "")
    return now - window if window else None


class AnalyticsService:

    async def get_analytics(
        self,
        db: AsyncSession,
        timeframe: Optional[str] = None,
        limit: int = MAX_RECENT_ACTIVITY,
        now: Optional[datetime] = None,
    ) -> AnalyticsResponse:
        """
        Args:
            timeframe: "today" | "week" | "month"; filters recent_activity only.
            limit: Max recent events, clamped to 1..50.
            now: Reference time (UTC). Defaults to the current time.

        Raises:
            StorageError: any database failure
        """
        now = as_utc(now) or utcnow()
        limit = max(1, min(limit, MAX_RECENT_ACTIVITY))

        try:
            total_users = (await db.execute(select(func.count(User.id)))).scalar() or 0
            active_today = await self._count_active_since(db, start_of_day(now))
            active_week = await self._count_active_since(db, now - TIMEFRAME_WINDOWS["week"])

            recent_query = (
                select(ActivityLog)
                .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
                .limit(limit)
            )
            since = timeframe_start(timeframe, now)
            if since is not None:
                recent_query = recent_query.where(ActivityLog.timestamp >= since)
            recent = (await db.execute(recent_query)).scalars().all()

            user_rows = (await db.execute(self._user_progress_query())).all()

        except SQLAlchemyError as e:
            logger.error("Database error computing analytics: %s", str(e), exc_info=True)
            raise StorageError.from_exception(e, context={"timeframe": timeframe})

        return AnalyticsResponse(
            total_users=total_users,
            active_today=active_today,
            active_week=active_week,
            recent_activity=[
                ActivityItem(
                    email=event.user_email,
                    activity_type=event.activity_type,
                    metadata=event.event_metadata,
                    timestamp=as_utc(event.timestamp),
                )
                for event in recent
            ],
            user_progress=[
                UserProgressItem(
                    email=row.email,
                    memorized_count=row.memorized_count or 0,
                    recited_count=row.recited_count or 0,
                    bookmarked_count=row.bookmarked_count or 0,
                    last_active=as_utc(row.last_active),
                )
                for row in user_rows
            ],
        )

    async def _count_active_since(self, db: AsyncSession, since: datetime) -> int:
        result = await db.execute(
            select(func.count(distinct(ActivityLog.user_email)))
            .where(ActivityLog.timestamp >= since)
        )
        return result.scalar() or 0

    def _user_progress_query(self):
        memorized_count = (
            select(func.count(VerseProgress.id))
            .where(VerseProgress.user_id == User.id, VerseProgress.memorized.is_(True))
            .correlate(User)
            .scalar_subquery()
        )
        bookmarked_count = (
            select(func.count(VerseProgress.id))
            .where(VerseProgress.user_id == User.id, VerseProgress.bookmarked.is_(True))
            .correlate(User)
            .scalar_subquery()
        )
        recited_count = (
            select(func.count(distinct(RecitedPage.page_number)))
            .where(RecitedPage.user_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        return (
            select(
                User.email,
                memorized_count.label("memorized_count"),
                recited_count.label("recited_count"),
                bookmarked_count.label("bookmarked_count"),
                User.last_active,
            )
            # NULL last_active sorts last on every backend
            .order_by(User.last_active.is_(None), User.last_active.desc(), User.email)
        )


analytics_service = AnalyticsService()
