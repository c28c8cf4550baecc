"""
Hafez Quraan Backend — Analytics Response Schemas
===================================================

What:  Read-only rollups returned by GET /analytics.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field

from hafez_api.schemas.common import CamelModel


class ActivityItem(CamelModel):
    email: str
    activity_type: str
    metadata: Any = None
    timestamp: datetime


class UserProgressItem(CamelModel):
    """Per-user summary row; `last_active` is null for users with no events."""
    email: str
    memorized_count: int = 0
    recited_count: int = 0
    bookmarked_count: int = 0
    last_active: Optional[datetime] = None


class AnalyticsResponse(CamelModel):
    success: bool = Field(default=True)
    total_users: int = Field(description="All users ever created")
    active_today: int = Field(description="Distinct emails with events since UTC midnight")
    active_week: int = Field(description="Distinct emails with events in the last 7 days")
    recent_activity: List[ActivityItem] = Field(default_factory=list)
    user_progress: List[UserProgressItem] = Field(default_factory=list)
