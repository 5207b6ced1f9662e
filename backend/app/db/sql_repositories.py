"""SQL implementations of repository interfaces."""

import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.context import RequestContext
from backend.app.db.models import Document as DocumentDB
from backend.app.db.models import Reminder as ReminderDB
from backend.app.db.queries import select_documents, select_reminders
from backend.app.db.repositories import reminder_sort_key
from backend.app.errors import DuplicateDocumentError, PersistenceError
from backend.app.models.common import DocType, Priority, ReminderSource
from backend.app.models.documents import Document, DocumentMetadata, Reminder, RiskAnalysis

logger = logging.getLogger(__name__)

_FINGERPRINT_CONSTRAINT_MARKERS = ("uq_document_user_hash", "document.content_hash")


class SqlDocumentRepository:
    """SQL implementation of DocumentRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def fingerprint_exists(self, ctx: RequestContext, fingerprint: str) -> bool:
        """Check whether the user already has a document with this fingerprint."""
        stmt = (
            select_documents(ctx)
            .where(DocumentDB.content_hash == fingerprint)
            .with_only_columns(DocumentDB.document_id)
            .limit(1)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to check for duplicates", str(e)) from e
        return result.first() is not None

    async def save_document(self, ctx: RequestContext, document: Document) -> Document:
        """Upsert the document row, then replace its reminder set in the same transaction."""
        try:
            row = await self._get_row(ctx, document.document_id)
            if row is None:
                row = DocumentDB(document_id=document.document_id, user_id=ctx.user_id)
                self._session.add(row)
            _apply_document(row, document)
            await self._session.flush()

            await self._session.execute(
                delete(ReminderDB).where(
                    ReminderDB.user_id == ctx.user_id,
                    ReminderDB.document_id == document.document_id,
                )
            )
            for reminder in document.reminders:
                self._session.add(_reminder_row(ctx, reminder))

            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            detail = str(e.orig)
            if any(marker in detail for marker in _FINGERPRINT_CONSTRAINT_MARKERS):
                raise DuplicateDocumentError(document.content_hash) from e
            logger.error(f"Document save failed: {detail}")
            raise PersistenceError("Failed to save document", detail) from e
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"Document save failed: {e}")
            raise PersistenceError("Failed to save document", str(e)) from e

        saved = await self.get_document(ctx, document.document_id)
        assert saved is not None
        return saved

    async def get_document(self, ctx: RequestContext, document_id: uuid.UUID) -> Document | None:
        """Get one document with its reminders attached."""
        try:
            row = await self._get_row(ctx, document_id)
            if row is None:
                return None
            reminders = await self._reminders_for(ctx, [row.document_id])
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load document", str(e)) from e
        return _to_domain(row, reminders.get(row.document_id, []))

    async def list_documents(
        self, ctx: RequestContext, *, category: DocType | None = None
    ) -> list[Document]:
        """List the user's documents, newest first, reminders attached."""
        stmt = select_documents(ctx)
        if category is not None:
            stmt = stmt.where(DocumentDB.category == category.value)
        stmt = stmt.order_by(DocumentDB.created_at.desc())

        try:
            result = await self._session.execute(stmt)
            rows = list(result.scalars().all())
            reminders = await self._reminders_for(ctx, [row.document_id for row in rows])
        except SQLAlchemyError as e:
            logger.error(f"Document load failed: {e}")
            raise PersistenceError("Failed to load documents", str(e)) from e

        return [_to_domain(row, reminders.get(row.document_id, [])) for row in rows]

    async def delete_document(
        self, ctx: RequestContext, document_id: uuid.UUID
    ) -> Document | None:
        """Delete a document and its reminders."""
        document = await self.get_document(ctx, document_id)
        if document is None:
            return None

        try:
            # Explicit delete; sqlite does not enforce ON DELETE CASCADE by default
            await self._session.execute(
                delete(ReminderDB).where(
                    ReminderDB.user_id == ctx.user_id, ReminderDB.document_id == document_id
                )
            )
            await self._session.execute(
                delete(DocumentDB).where(
                    DocumentDB.user_id == ctx.user_id, DocumentDB.document_id == document_id
                )
            )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError("Failed to delete document", str(e)) from e

        return document

    async def list_reminders(self, ctx: RequestContext) -> list[Reminder]:
        """List manual and document reminders, sorted by date then time."""
        try:
            result = await self._session.execute(select_reminders(ctx))
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load reminders", str(e)) from e
        reminders = [_reminder_to_domain(row) for row in result.scalars().all()]
        return sorted(reminders, key=reminder_sort_key)

    async def get_reminder(self, ctx: RequestContext, reminder_id: uuid.UUID) -> Reminder | None:
        """Get one reminder."""
        row = await self._get_reminder_row(ctx, reminder_id)
        return _reminder_to_domain(row) if row is not None else None

    async def save_reminder(self, ctx: RequestContext, reminder: Reminder) -> Reminder:
        """Insert or replace a single reminder."""
        try:
            row = await self._get_reminder_row(ctx, reminder.reminder_id)
            if row is None:
                self._session.add(_reminder_row(ctx, reminder))
            else:
                row.title = reminder.title
                row.description = reminder.description
                row.date = reminder.date
                row.time = reminder.time
                row.priority = reminder.priority.value
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"Reminder save failed: {e}")
            raise PersistenceError("Failed to save reminder", str(e)) from e

        return reminder

    async def delete_reminder(self, ctx: RequestContext, reminder_id: uuid.UUID) -> bool:
        """Delete a single reminder."""
        try:
            result = await self._session.execute(
                delete(ReminderDB).where(
                    ReminderDB.user_id == ctx.user_id, ReminderDB.reminder_id == reminder_id
                )
            )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise PersistenceError("Failed to delete reminder", str(e)) from e
        return bool(result.rowcount)

    async def _get_row(self, ctx: RequestContext, document_id: uuid.UUID) -> DocumentDB | None:
        stmt = select_documents(ctx).where(DocumentDB.document_id == document_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_reminder_row(
        self, ctx: RequestContext, reminder_id: uuid.UUID
    ) -> ReminderDB | None:
        stmt = select_reminders(ctx).where(ReminderDB.reminder_id == reminder_id)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load reminder", str(e)) from e
        return result.scalar_one_or_none()

    async def _reminders_for(
        self, ctx: RequestContext, document_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, list[Reminder]]:
        if not document_ids:
            return {}
        stmt = select_reminders(ctx).where(ReminderDB.document_id.in_(document_ids))
        result = await self._session.execute(stmt)

        grouped: dict[uuid.UUID, list[Reminder]] = defaultdict(list)
        for row in result.scalars().all():
            assert row.document_id is not None
            grouped[row.document_id].append(_reminder_to_domain(row))
        for reminders in grouped.values():
            reminders.sort(key=reminder_sort_key)
        return grouped


def _apply_document(row: DocumentDB, document: Document) -> None:
    """Copy a domain document onto its row, flattening the filter/sort fields."""
    meta = document.metadata
    row.title = meta.title
    row.category = meta.category.value
    row.summary = meta.summary
    row.event_date = meta.event_date
    row.event_time = meta.event_time
    row.expiry_date = meta.expiry_date
    row.file_name = document.file_name
    row.mime_type = document.mime_type
    row.is_text_based = document.is_text_based
    row.inline_content = document.inline_content
    row.preview_image = document.preview_image
    row.file_path = document.file_path
    row.content_hash = document.content_hash
    row.extracted_data = meta.model_dump(mode="json", exclude={"risk_analysis"})
    row.risk_analysis = (
        meta.risk_analysis.model_dump(mode="json") if meta.risk_analysis is not None else None
    )
    row.created_at = document.created_at
    row.updated_at = document.updated_at or datetime.now(timezone.utc)


def _reminder_row(ctx: RequestContext, reminder: Reminder) -> ReminderDB:
    return ReminderDB(
        reminder_id=reminder.reminder_id,
        user_id=ctx.user_id,
        document_id=reminder.document_id,
        title=reminder.title,
        description=reminder.description,
        date=reminder.date,
        time=reminder.time,
        priority=reminder.priority.value,
        source=reminder.source.value,
    )


def _to_domain(row: DocumentDB, reminders: list[Reminder]) -> Document:
    metadata = DocumentMetadata.model_validate(row.extracted_data)
    if row.risk_analysis is not None:
        metadata.risk_analysis = RiskAnalysis.model_validate(row.risk_analysis)

    return Document(
        document_id=row.document_id,
        user_id=row.user_id,
        file_name=row.file_name,
        mime_type=row.mime_type,
        is_text_based=row.is_text_based,
        inline_content=row.inline_content,
        preview_image=row.preview_image,
        file_path=row.file_path,
        content_hash=row.content_hash,
        metadata=metadata,
        reminders=reminders,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _reminder_to_domain(row: ReminderDB) -> Reminder:
    return Reminder(
        reminder_id=row.reminder_id,
        title=row.title,
        description=row.description,
        date=row.date,
        time=row.time,
        priority=Priority(row.priority),
        source=ReminderSource(row.source),
        document_id=row.document_id,
    )
