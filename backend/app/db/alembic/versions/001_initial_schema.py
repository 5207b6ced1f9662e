"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates:
- document (unique per user_id + content_hash)
- reminder (optional FK to document, cascades on delete)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create document and reminder tables."""
    # document table
    op.create_table(
        "document",
        sa.Column("document_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False, server_default="Other"),
        sa.Column("summary", sa.Text(), nullable=False, server_default=""),
        sa.Column("event_date", sa.Date(), nullable=True),
        sa.Column("event_time", sa.Text(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("mime_type", sa.Text(), nullable=False),
        sa.Column("is_text_based", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("inline_content", sa.Text(), nullable=True),
        sa.Column("preview_image", sa.Text(), nullable=True),
        sa.Column("file_path", sa.Text(), nullable=True),
        sa.Column("content_hash", sa.Text(), nullable=False),
        sa.Column(
            "extracted_data",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column(
            "risk_analysis",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "content_hash", name="uq_document_user_hash"),
    )
    op.create_index("idx_document_user_created", "document", ["user_id", "created_at"])

    # reminder table
    op.create_table(
        "reminder",
        sa.Column("reminder_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("document_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Text(), nullable=True),
        sa.Column("priority", sa.Text(), nullable=False, server_default="Medium"),
        sa.Column("source", sa.Text(), nullable=False, server_default="manual"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["document.document_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_reminder_user_date", "reminder", ["user_id", "date"])
    op.create_index("idx_reminder_document", "reminder", ["document_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_reminder_document", table_name="reminder")
    op.drop_index("idx_reminder_user_date", table_name="reminder")
    op.drop_table("reminder")
    op.drop_index("idx_document_user_created", table_name="document")
    op.drop_table("document")
