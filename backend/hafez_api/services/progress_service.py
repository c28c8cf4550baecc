"""
Hafez Quraan Backend — Progress Service (save/load memorization state)
========================================================================

What:  The save/load contract for a user's verse flags, recited pages and
       app preferences.
Who:   Called by POST /save-progress and GET /load-progress/{email}.

Synchronization Model (full snapshot):
    The client always sends its complete state. The server never merges:

        save_progress(M, R, B, P, prefs)
          1. resolve or create the user
          2. overwrite all four preference fields (supplied value or default)
          3. DELETE every verse_progress / recited_pages row for the user
          4. INSERT one verse row per distinct key in M ∪ R ∪ B, with
             memorized = key ∈ M, reviewed = key ∈ R, bookmarked = key ∈ B
          5. INSERT one recited_pages row per page in P
          6. COMMIT

    Steps 1–5 share one transaction and commit together. A concurrent
    reader sees either the previous snapshot or the new one, never the
    empty gap between DELETE and INSERT, and a failed save rolls back to
    the previous snapshot.

    Round-trip property: filtering the stored rows on each flag gives back
    exactly M, R and B as sets.

Duplicate entries:
    A key repeated inside one list (or a page repeated in P) is rejected as
    a caller error. The same key in several lists is normal and expected.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hafez_api.database import utcnow
from hafez_api.exceptions import StorageError, ValidationError
from hafez_api.models import RecitedPage, VerseProgress, User
from hafez_api.schemas.progress import LoadProgressResponse, SaveProgressRequest
from hafez_api.services.identity_service import (
    DEFAULT_LANGUAGE,
    DEFAULT_RECITER,
    DEFAULT_VERSE_INDEX,
    DEFAULT_VIEW_MODE,
    IdentityService,
    identity_service,
)

logger = logging.getLogger(__name__)


def _reject_duplicates(values: Iterable, field: str) -> None:
    seen = set()
    duplicates = []
    for value in values:
        if value in seen and value not in duplicates:
            duplicates.append(value)
        seen.add(value)
    if duplicates:
        raise ValidationError(
            message=f"Duplicate entries in '{field}': {', '.join(str(d) for d in duplicates)}",
            field=field,
            context={"duplicates": duplicates},
        )


def build_verse_rows(
    memorized: List[str],
    reviewed: List[str],
    bookmarked: List[str],
) -> List[Dict]:
    """
    Reconcile the three client lists into one row dict per distinct verse.

    Order is first appearance: memorized, then reviewed-only, then
    bookmarked-only verses.
    """
    memorized_set = set(memorized)
    reviewed_set = set(reviewed)
    bookmarked_set = set(bookmarked)

    rows = []
    emitted = set()
    for key in [*memorized, *reviewed, *bookmarked]:
        if key in emitted:
            continue
        emitted.add(key)
        rows.append({
            "verse_key": key,
            "memorized": key in memorized_set,
            "reviewed": key in reviewed_set,
            "bookmarked": key in bookmarked_set,
        })
    return rows


class ProgressService:
    """
    Error Handling Strategy:
        Validation happens before any database work. Database errors roll
        back the session and are re-raised as StorageError with the driver's
        message.
    """

    def __init__(self, identity: IdentityService = identity_service):
        self.identity = identity

    def _validate_payload(self, payload: SaveProgressRequest) -> None:
        for field in ("memorized", "reviewed", "bookmarked"):
            keys = getattr(payload, field)
            if any(not key or not key.strip() for key in keys):
                raise ValidationError(
                    message=f"Verse identifiers in '{field}' must be non-empty",
                    field=field,
                )
            _reject_duplicates(keys, field)
        _reject_duplicates(payload.recited, "recited")

    async def save_progress(self, db: AsyncSession, payload: SaveProgressRequest) -> None:
        """
        Replace the user's stored state with `payload`.

        Raises:
            ValidationError: missing/malformed email, blank or duplicate entries
            StorageError: any database failure (nothing is persisted)
        """
        email = self.identity.validate_email(payload.email)
        self._validate_payload(payload)

        verse_rows = build_verse_rows(payload.memorized, payload.reviewed, payload.bookmarked)

        try:
            user_id = await self.identity.resolve_or_create(db, email)
            now = utcnow()

            # Full overwrite: omitted preferences reset to defaults
            await db.execute(
                update(User)
                .where(User.id == user_id)
                .values(
                    language=payload.language or DEFAULT_LANGUAGE,
                    reciter=payload.reciter or DEFAULT_RECITER,
                    last_view_mode=payload.last_view_mode or DEFAULT_VIEW_MODE,
                    last_verse_index=(
                        payload.last_verse_index
                        if payload.last_verse_index is not None
                        else DEFAULT_VERSE_INDEX
                    ),
                    updated_at=now,
                )
            )

            await db.execute(delete(VerseProgress).where(VerseProgress.user_id == user_id))
            await db.execute(delete(RecitedPage).where(RecitedPage.user_id == user_id))

            db.add_all(
                VerseProgress(user_id=user_id, updated_at=now, **row) for row in verse_rows
            )
            db.add_all(
                RecitedPage(user_id=user_id, page_number=page, recited_at=now)
                for page in payload.recited
            )

            await db.commit()

        except (StorageError, SQLAlchemyError) as e:
            await db.rollback()
            if isinstance(e, StorageError):
                raise
            logger.error("Database error saving progress for %s: %s", email, str(e), exc_info=True)
            raise StorageError.from_exception(e, context={"email": email})

        logger.info(
            "Saved progress for %s: %d verses, %d pages",
            email,
            len(verse_rows),
            len(payload.recited),
        )

    async def load_progress(self, db: AsyncSession, email: Optional[str]) -> LoadProgressResponse:
        """
        Return the stored snapshot for `email`.

        Unknown emails are not an error: they get empty lists and the
        default preferences.

        Raises:
            ValidationError: missing/malformed email
            StorageError: any database failure
        """
        email = self.identity.validate_email(email)
        user = await self.identity.find_user(db, email)

        if user is None:
            return LoadProgressResponse(
                language=DEFAULT_LANGUAGE,
                reciter=DEFAULT_RECITER,
                last_view_mode=DEFAULT_VIEW_MODE,
                last_verse_index=DEFAULT_VERSE_INDEX,
            )

        try:
            verse_result = await db.execute(
                select(VerseProgress)
                .where(VerseProgress.user_id == user.id)
                .order_by(VerseProgress.id)
            )
            verses = list(verse_result.scalars().all())

            page_result = await db.execute(
                select(RecitedPage.page_number)
                .where(RecitedPage.user_id == user.id)
                .order_by(RecitedPage.page_number)
            )
            pages = list(page_result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error loading progress for %s: %s", email, str(e), exc_info=True)
            raise StorageError.from_exception(e, context={"email": email})

        return LoadProgressResponse(
            memorized=[v.verse_key for v in verses if v.memorized],
            reviewed=[v.verse_key for v in verses if v.reviewed],
            bookmarked=[v.verse_key for v in verses if v.bookmarked],
            recited=pages,
            language=user.language or DEFAULT_LANGUAGE,
            reciter=user.reciter or DEFAULT_RECITER,
            last_view_mode=user.last_view_mode or DEFAULT_VIEW_MODE,
            last_verse_index=(
                user.last_verse_index
                if user.last_verse_index is not None
                else DEFAULT_VERSE_INDEX
            ),
        )


progress_service = ProgressService()
