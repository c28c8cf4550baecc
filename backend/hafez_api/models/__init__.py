from hafez_api.models.activity import ActivityLog
from hafez_api.models.progress import RecitedPage, VerseProgress
from hafez_api.models.user import User

__all__ = ["ActivityLog", "RecitedPage", "User", "VerseProgress"]
