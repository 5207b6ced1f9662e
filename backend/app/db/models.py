"""SQLAlchemy ORM models for documents and reminders."""

import datetime as dt
import uuid
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Document(Base):
    """Document table - one uploaded file per row, scoped by owner."""

    __tablename__ = "document"
    __table_args__ = (
        UniqueConstraint("user_id", "content_hash", name="uq_document_user_hash"),
        Index("idx_document_user_created", "user_id", "created_at"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # Flattened from extracted_data for filtering and sorting
    title: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False, default="Other")
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    event_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    event_time: Mapped[str | None] = mapped_column(Text, nullable=True)
    expiry_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)

    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    mime_type: Mapped[str] = mapped_column(Text, nullable=False)
    is_text_based: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    inline_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    preview_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_hash: Mapped[str] = mapped_column(Text, nullable=False)

    extracted_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    risk_analysis: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Reminder(Base):
    """Reminder table - document-derived or manual, scoped by owner."""

    __tablename__ = "reminder"
    __table_args__ = (
        Index("idx_reminder_user_date", "user_id", "date"),
        Index("idx_reminder_document", "document_id"),
    )

    reminder_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("document.document_id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="Medium")
    source: Mapped[str] = mapped_column(Text, nullable=False, default="manual")
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
