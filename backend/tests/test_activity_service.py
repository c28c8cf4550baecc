"""
Hafez Quraan Backend — Activity Service Tests
===============================================

What we test:
    ✅ An event is stored with its metadata and (UTC) timestamp
    ✅ Logging an event creates or bumps the user's last_active (never a duplicate user)
    ✅ last_active is never earlier than the event time
    ✅ Missing email / activity type is rejected before any write
    ✅ Simultaneous first events for a new email create one user
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from hafez_api.database import as_utc, utcnow
from hafez_api.exceptions import StorageError, ValidationError
from hafez_api.models import ActivityLog, User
from hafez_api.services.activity_service import ActivityService


class TestLogActivity:

    def setup_method(self):
        self.service = ActivityService()

    @pytest.mark.asyncio
    async def test_stores_event(self, db_session):
        metadata = {"verse": "2:255", "streak": 3, "tags": ["night"]}
        entry = await self.service.log_activity(
            db_session, "a@x.com", "verse_memorized", metadata=metadata
        )

        stored = (await db_session.execute(select(ActivityLog))).scalars().all()
        assert len(stored) == 1
        assert stored[0].id == entry.id
        assert stored[0].user_email == "a@x.com"
        assert stored[0].activity_type == "verse_memorized"
        assert stored[0].event_metadata == metadata

    @pytest.mark.asyncio
    async def test_client_timestamp_converted_to_utc(self, db_session):
        cairo = timezone(timedelta(hours=2))
        at = datetime(2026, 5, 1, 10, 0, tzinfo=cairo)
        entry = await self.service.log_activity(db_session, "a@x.com", "login", timestamp=at)
        assert as_utc(entry.timestamp) == datetime(2026, 5, 1, 8, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_creates_user_with_last_active(self, db_session):
        before = utcnow()
        await self.service.log_activity(db_session, "new@x.com", "login")

        user = (await db_session.execute(select(User).where(User.email == "new@x.com"))).scalar_one()
        assert as_utc(user.last_active) >= before

    @pytest.mark.asyncio
    async def test_repeated_events_keep_one_user(self, db_session):
        for _ in range(3):
            await self.service.log_activity(db_session, "a@x.com", "page_recited")

        assert (await db_session.execute(select(func.count(User.id)))).scalar() == 1
        assert (await db_session.execute(select(func.count(ActivityLog.id)))).scalar() == 3

    @pytest.mark.asyncio
    async def test_last_active_not_before_future_event(self, db_session):
        future = utcnow() + timedelta(hours=3)
        await self.service.log_activity(db_session, "a@x.com", "login", timestamp=future)

        user = (await db_session.execute(select(User).where(User.email == "a@x.com"))).scalar_one()
        assert as_utc(user.last_active) >= future

    @pytest.mark.asyncio
    async def test_metadata_may_be_any_json_value(self, db_session):
        entry = await self.service.log_activity(db_session, "a@x.com", "note", metadata=[1, "two"])
        assert entry.event_metadata == [1, "two"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("activity_type", [None, "", "  "])
    async def test_missing_activity_type(self, mock_db_session, activity_type):
        with pytest.raises(ValidationError, match="Activity type is required"):
            await self.service.log_activity(mock_db_session, "a@x.com", activity_type)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_email(self, mock_db_session):
        with pytest.raises(ValidationError, match="Email is required"):
            await self.service.log_activity(mock_db_session, None, "login")
        mock_db_session.commit.assert_not_awaited()


class TestConcurrentFirstEvents:

    def setup_method(self):
        self.service = ActivityService()

    @pytest.mark.asyncio
    async def test_one_user_for_simultaneous_first_events(self, session_factory):
        async def log(n):
            async with session_factory() as db:
                return await self.service.log_activity(db, "fresh@x.com", "login", metadata={"n": n})

        results = await asyncio.gather(*(log(n) for n in range(5)), return_exceptions=True)
        for result in results:
            assert isinstance(result, (ActivityLog, StorageError))

        async with session_factory() as db:
            assert (await db.execute(select(func.count(User.id)))).scalar() == 1
            user = (await db.execute(select(User).where(User.email == "fresh@x.com"))).scalar_one()
            assert user.last_active is not None
