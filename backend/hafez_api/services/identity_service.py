"""
Hafez Quraan Backend — Identity Service (email → user)
========================================================

What:  Maps an email address to a stable `users.id`, creating the row on first sight.
Who:   ProgressService (save/load) and ActivityService (last-active bump).

Two write paths, two shapes:
    resolve_or_create():  used by save-progress. Inserts a row with the default
                           preferences when absent; returns the existing id
                           untouched otherwise.
    upsert_last_active(): used by log-activity. A single
                           INSERT ... ON CONFLICT (email) DO UPDATE statement,
                           so two concurrent first-time events for the same
                           email cannot both insert. Never touches preferences.

Email validation is intentionally shallow: present, contains '@' and '.'.
Emails are case-sensitive and stored exactly as received.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hafez_api.database import dialect_insert, utcnow
from hafez_api.exceptions import StorageError, ValidationError
from hafez_api.models import User

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
DEFAULT_RECITER = "ar.alafasy"
DEFAULT_VIEW_MODE = "surah"
DEFAULT_VERSE_INDEX = 0


class IdentityService:
    """Stateless; every method receives the request's session."""

    def validate_email(self, email: Optional[str]) -> str:
        """
        Raises:
            ValidationError: email missing/blank, or lacking '@' or '.'
        """
        if email is None or not email.strip():
            raise ValidationError(message="Email is required", field="email")
        if "@" not in email or "." not in email:
            raise ValidationError(message="Invalid email address", field="email")
        return email

    async def find_user(self, db: AsyncSession, email: str) -> Optional[User]:
        """Read-only lookup; None when the email has never been seen."""
        try:
            result = await db.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user %s: %s", email, str(e))
            raise StorageError.from_exception(e, context={"email": email})

    async def resolve_or_create(self, db: AsyncSession, email: str) -> int:
        """
        Return the user id for `email`, inserting a default row if absent.

        The insert is INSERT ... ON CONFLICT DO NOTHING followed by a re-read,
        so losing a race against another first-time request still yields
        the winner's id instead of a unique-constraint failure.

        Raises:
            ValidationError: malformed email
            StorageError: any database failure
        """
        email = self.validate_email(email)
        try:
            result = await db.execute(select(User.id).where(User.email == email))
            user_id = result.scalar_one_or_none()
            if user_id is not None:
                return user_id

            now = utcnow()
            stmt = (
                dialect_insert(db, User)
                .values(
                    email=email,
                    language=DEFAULT_LANGUAGE,
                    reciter=DEFAULT_RECITER,
                    last_view_mode=DEFAULT_VIEW_MODE,
                    last_verse_index=DEFAULT_VERSE_INDEX,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(index_elements=["email"])
            )
            await db.execute(stmt)

            result = await db.execute(select(User.id).where(User.email == email))
            user_id = result.scalar_one()
            logger.info("Created user %s (id=%s)", email, user_id)
            return user_id

        except StorageError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error resolving user %s: %s", email, str(e))
            raise StorageError.from_exception(e, context={"email": email})

    async def upsert_last_active(
        self,
        db: AsyncSession,
        email: str,
        at: Optional[datetime] = None,
    ) -> None:
        """
        Create-or-bump `last_active` for `email` in one atomic statement.

        A newly created row has only last_active (and timestamps) populated;
        its preferences stay NULL until the first save-progress.

        Raises:
            ValidationError: malformed email
            StorageError: any database failure
        """
        email = self.validate_email(email)
        at = at or utcnow()
        try:
            insert_stmt = dialect_insert(db, User).values(
                email=email,
                last_active=at,
                created_at=at,
                updated_at=at,
            )
            stmt = insert_stmt.on_conflict_do_update(
                index_elements=["email"],
                set_={
                    "last_active": insert_stmt.excluded.last_active,
                    "updated_at": insert_stmt.excluded.updated_at,
                },
            )
            await db.execute(stmt)
        except StorageError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating last_active for %s: %s", email, str(e))
            raise StorageError.from_exception(e, context={"email": email})


identity_service = IdentityService()
