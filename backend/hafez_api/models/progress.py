"""
Hafez Quraan Backend — Progress SQLAlchemy Models
===================================================

What:  `verse_progress` (flags per verse) and `recited_pages` (page existence).
How:   Both tables are owned by a user and rewritten wholesale by
       ProgressService.save_progress: delete every row for the user, insert
       the new snapshot. There is no per-row update path.

Invariants (enforced by unique constraints):
    - at most one verse_progress row per (user_id, verse_key)
    - at most one recited_pages row per (user_id, page_number)
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    false,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hafez_api.database import Base, utcnow


class VerseProgress(Base):
    """
    One verse's state for one user.

    A verse present in several of the client's lists (memorized, reviewed,
    bookmarked) is still a single row with several flags set.
    """

    __tablename__ = "verse_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Format: "chapter:verse", e.g. "2:255"
    verse_key: Mapped[str] = mapped_column(String(20), nullable=False)

    memorized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    bookmarked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    user: Mapped["User"] = relationship(back_populates="verses")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("user_id", "verse_key", name="uq_verse_progress_user_verse"),
    )

    def __repr__(self) -> str:
        return (
            f"<VerseProgress(user_id={self.user_id}, verse='{self.verse_key}', "
            f"m={self.memorized}, r={self.reviewed}, b={self.bookmarked})>"
        )


class RecitedPage(Base):
    """A mushaf page the user has recited. Absence means not recited."""

    __tablename__ = "recited_pages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    recited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    user: Mapped["User"] = relationship(back_populates="recited_pages")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("user_id", "page_number", name="uq_recited_pages_user_page"),
    )

    def __repr__(self) -> str:
        return f"<RecitedPage(user_id={self.user_id}, page={self.page_number})>"
