"""
Hafez Quraan Backend — Activity Log SQLAlchemy Model
======================================================

What:  Append-only `activity_logs` table feeding the analytics endpoint.
Why no foreign key: events are keyed by the email string only, so an event
       can be recorded before (or without) a matching users row, and the log
       outlives any user deletion.

Query Patterns:
    - Recent events: ORDER BY timestamp DESC LIMIT 50 → idx_activity_logs_timestamp
    - Distinct active users since T: WHERE timestamp >= T → same index
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from hafez_api.database import Base, utcnow


class ActivityLog(Base):
    """Never updated or deleted once written."""

    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    activity_type: Mapped[str] = mapped_column(String(100), nullable=False)

    # Column is named "metadata" in the table; the attribute name avoids
    # clashing with DeclarativeBase.metadata
    event_metadata: Mapped[Optional[Any]] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
        comment="Opaque client-supplied JSON value, not schema-validated",
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the event happened (client-supplied or request time)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the server recorded the event",
    )

    __table_args__ = (
        Index("idx_activity_logs_timestamp", timestamp.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<ActivityLog(id={self.id}, email='{self.user_email}', "
            f"type='{self.activity_type}', timestamp='{self.timestamp}')>"
        )
