"""Create verse_progress and recited_pages tables

Revision ID: 002
Revises: 001
Create Date: 2024-06-01 00:10:00.000000+00:00

What:  Per-user progress tables, both rewritten wholesale on every save.
How:   Unique (user_id, verse_key) and (user_id, page_number) hold the
       one-row-per-item invariant; ON DELETE CASCADE ties rows to the user.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "verse_progress",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "verse_key",
            sa.String(20),
            nullable=False,
            comment="chapter:verse, e.g. 2:255",
        ),
        sa.Column("memorized", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("reviewed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("bookmarked", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "verse_key", name="uq_verse_progress_user_verse"),
    )
    op.create_index("ix_verse_progress_user_id", "verse_progress", ["user_id"])

    op.create_table(
        "recited_pages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("page_number", sa.Integer(), nullable=False),
        sa.Column(
            "recited_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "page_number", name="uq_recited_pages_user_page"),
    )
    op.create_index("ix_recited_pages_user_id", "recited_pages", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_recited_pages_user_id", table_name="recited_pages")
    op.drop_table("recited_pages")
    op.drop_index("ix_verse_progress_user_id", table_name="verse_progress")
    op.drop_table("verse_progress")
