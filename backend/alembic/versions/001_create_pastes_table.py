"""Create pastes table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `pastes` table with its unique public id and the two
       listing indexes (recent, related).
How:   tags is a PostgreSQL text[]; timestamps are TIMESTAMP WITH TIME ZONE.

Rollback: downgrade() drops the table (all pastes are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the pastes table; see codesnap/models/paste.py for column docs."""
    op.create_table(
        "pastes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False,
                  comment="Internal key; never exposed by the API"),
        sa.Column("paste_id", sa.String(32), nullable=False,
                  comment="Public short identifier"),
        sa.Column("title", sa.Text(), nullable=False, server_default=sa.text("'Untitled'")),
        sa.Column("content", sa.Text(), nullable=False,
                  comment="Snippet text, or raw CSV/XML for file pastes"),
        sa.Column("language", sa.Text(), nullable=False, server_default=sa.text("'plaintext'"),
                  comment="Syntax hint for display; not validated"),
        sa.Column("author_name", sa.Text(), nullable=False, server_default=sa.text("'Anonymous'")),
        sa.Column("tags", postgresql.ARRAY(sa.Text()), nullable=False,
                  server_default=sa.text("'{}'::text[]")),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
            comment="When this paste was created (UTC)",
        ),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=True,
                  comment="Absolute expiry instant (UTC); NULL = never"),
        sa.Column("is_file", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("file_name", sa.Text(), nullable=True),
        sa.Column("file_type", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("paste_id", name="uq_pastes_paste_id"),
    )

    op.create_index("idx_pastes_created_at", "pastes", [sa.text("created_at DESC")])
    op.create_index("idx_pastes_language_views", "pastes", ["language", sa.text("views DESC")])


def downgrade() -> None:
    op.drop_index("idx_pastes_language_views", table_name="pastes")
    op.drop_index("idx_pastes_created_at", table_name="pastes")
    op.drop_table("pastes")
