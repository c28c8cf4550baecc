"""Add preference and last-active columns to users

Revision ID: 004
Revises: 003
Create Date: 2024-08-20 00:00:00.000000+00:00

What:  language, reciter, last_view_mode, last_verse_index, last_active.
Why nullable: rows created by the activity upsert carry only last_active;
       readers substitute the defaults (en, ar.alafasy, surah, 0).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("users", sa.Column("language", sa.String(10), nullable=True))
    op.add_column("users", sa.Column("reciter", sa.String(100), nullable=True))
    op.add_column("users", sa.Column("last_view_mode", sa.String(20), nullable=True))
    op.add_column("users", sa.Column("last_verse_index", sa.Integer(), nullable=True))
    op.add_column(
        "users",
        sa.Column(
            "last_active",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Bumped by every activity event",
        ),
    )
    op.create_index("idx_users_last_active", "users", ["last_active"])


def downgrade() -> None:
    op.drop_index("idx_users_last_active", table_name="users")
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("last_active")
        batch_op.drop_column("last_verse_index")
        batch_op.drop_column("last_view_mode")
        batch_op.drop_column("reciter")
        batch_op.drop_column("language")
