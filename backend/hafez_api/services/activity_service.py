"""
Hafez Quraan Backend — Activity Service (append-only event log)
=================================================================

What:  Records one activity event and bumps the user's last-active watermark.
Who:   Called by POST /log-activity.

Write sequence (two independent commits):
    1. INSERT INTO activity_logs ...            → COMMIT
    2. users upsert (last_active = max(now, event time)) → COMMIT

    The log row is the source of truth; users.last_active is a denormalized
    hint. If step 2 fails, the event stays recorded, last_active stays
    stale, and the request is still reported as failed.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hafez_api.database import as_utc, utcnow
from hafez_api.exceptions import StorageError, ValidationError
from hafez_api.models import ActivityLog
from hafez_api.services.identity_service import IdentityService, identity_service

logger = logging.getLogger(__name__)


class ActivityService:

    def __init__(self, identity: IdentityService = identity_service):
        self.identity = identity

    async def log_activity(
        self,
        db: AsyncSession,
        email: Optional[str],
        activity_type: Optional[str],
        metadata: Any = None,
        timestamp: Optional[datetime] = None,
    ) -> ActivityLog:
        """
        Append an event for `email`.

        Args:
            metadata: Any JSON-serializable value; stored untouched.
            timestamp: Event time. Defaults to now; converted to UTC.

        Returns:
            The persisted ActivityLog row.

        Raises:
            ValidationError: missing/malformed email or missing activity type
            StorageError: either write failed
        """
        email = self.identity.validate_email(email)
        if activity_type is None or not activity_type.strip():
            raise ValidationError(message="Activity type is required", field="activityType")

        now = utcnow()
        event_time = as_utc(timestamp) or now
        entry = ActivityLog(
            user_email=email,
            activity_type=activity_type,
            event_metadata=metadata,
            timestamp=event_time,
            created_at=now,
        )

        try:
            db.add(entry)
            await db.commit()
            entry_id = entry.id
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error logging activity for %s: %s", email, str(e), exc_info=True)
            raise StorageError.from_exception(e, context={"email": email})

        # Separate statement and commit: the event above is kept even if this fails.
        # last_active never lags the event it was bumped for (clock skew on clients).
        try:
            await self.identity.upsert_last_active(db, email, at=max(now, event_time))
            await db.commit()
        except (StorageError, SQLAlchemyError) as e:
            await db.rollback()
            logger.error(
                "Activity %s recorded but last_active update failed for %s: %s",
                entry_id,
                email,
                str(e),
            )
            if isinstance(e, StorageError):
                raise
            raise StorageError.from_exception(e, context={"email": email, "activity_id": entry_id})

        logger.info("Logged activity '%s' for %s", activity_type, email)
        return entry


activity_service = ActivityService()
