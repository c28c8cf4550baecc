"""
Hafez Quraan Backend — User SQLAlchemy Model
==============================================

What:  ORM model for the `users` table: one row per email address.
Who:   IdentityService creates/updates rows; ProgressService reads preferences;
       AnalyticsService reports on every row.

Table Design Rationale:
    - email is the identity. Unique, case-sensitive, never normalized.
    - Preference columns are nullable with no column defaults: a row created by
      the activity upsert carries only `last_active`, and readers fall back to
      the documented defaults per field.
    - last_active is a denormalized hint; the activity log is authoritative.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hafez_api.database import Base, utcnow


class User(Base):
    """
    Lifecycle:
        1. Created by the first save-progress or log-activity call for an email
        2. Preferences overwritten in full on every save-progress call
        3. last_active bumped on every log-activity call
        4. Deleting a user cascades to verse_progress and recited_pages
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Identity key; compared case-sensitively",
    )

    # ── Preferences (overwritten on every save) ───────────────────────────
    language: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    reciter: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_view_mode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    last_verse_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    last_active: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Bumped by every activity event",
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    verses: Mapped[List["VerseProgress"]] = relationship(  # noqa: F821
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    recited_pages: Mapped[List["RecitedPage"]] = relationship(  # noqa: F821
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # Named to match migration 001; analytics orders users by last_active
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("idx_users_last_active", "last_active"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
