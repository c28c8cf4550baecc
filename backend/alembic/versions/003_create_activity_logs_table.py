"""Create activity_logs table

Revision ID: 003
Revises: 002
Create Date: 2024-07-15 00:00:00.000000+00:00

What:  Append-only analytics events, keyed by email (no foreign key).
How:   JSONB metadata on PostgreSQL, JSON elsewhere. Index on timestamp DESC
       serves "recent activity" and the active-user counts.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("activity_type", sa.String(100), nullable=False),
        sa.Column(
            "metadata",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=True,
            comment="Opaque client-supplied JSON value, not schema-validated",
        ),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the event happened (client-supplied or request time)",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="When the server recorded the event",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_logs_user_email", "activity_logs", ["user_email"])
    op.create_index(
        "idx_activity_logs_timestamp",
        "activity_logs",
        [sa.text("timestamp DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_activity_logs_timestamp", table_name="activity_logs")
    op.drop_index("ix_activity_logs_user_email", table_name="activity_logs")
    op.drop_table("activity_logs")
