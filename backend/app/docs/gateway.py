"""Persistence gateway - documents, reminders and their storage objects.

Combines the repository (rows) with the object store (binary files) so
callers never touch either directly. Reads resolve storage paths into
short-lived signed URLs.
"""

import asyncio
import logging
from datetime import datetime, timezone
from uuid import UUID, uuid4

from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.repositories import DocumentRepository
from backend.app.errors import StorageError
from backend.app.models.common import DocType, ReminderSource
from backend.app.models.documents import (
    Document,
    DocumentPatch,
    Reminder,
    ReminderInput,
    RiskAnalysis,
)
from backend.app.storage.object_store import ObjectStore
from backend.app.utils.metrics import PrometheusPipelineMetrics

logger = logging.getLogger(__name__)


class DocumentGateway:
    """Read/write access to a user's documents and reminders."""

    def __init__(
        self,
        repo: DocumentRepository,
        store: ObjectStore,
        settings: Settings,
        metrics: PrometheusPipelineMetrics | None = None,
    ) -> None:
        self.repo = repo
        self.store = store
        self.settings = settings
        self.metrics = metrics or PrometheusPipelineMetrics()

    # Storage objects

    async def upload_object(self, ctx: RequestContext, file_name: str, data: bytes) -> str | None:
        """Store the upload bytes. A failed upload is logged and yields None."""
        try:
            return await asyncio.to_thread(self.store.put, ctx.user_id, file_name, data)
        except StorageError as e:
            logger.warning(f"Storage upload failed, keeping inline content: {e}")
            return None

    async def remove_object(self, path: str) -> bool:
        """Remove a storage object. Failures are logged and counted, never raised."""
        try:
            await asyncio.to_thread(self.store.remove, path)
        except StorageError as e:
            logger.warning(
                f"Storage removal failed, object orphaned: {path}",
                extra={"structured": {"file_path": path, "error_reason": str(e)}},
            )
            self.metrics.inc_orphan()
            return False
        return True

    def resolve_url(self, document: Document) -> Document:
        """Attach a signed URL when the document has a storage object."""
        if not document.file_path:
            return document
        url = self.store.signed_url(document.file_path, self.settings.signed_url_ttl_seconds)
        return document.model_copy(update={"file_url": url})

    # Documents

    async def save_document(self, ctx: RequestContext, document: Document) -> Document:
        """Persist a document with its reminder set and return it with a signed URL."""
        saved = await self.repo.save_document(ctx, document)
        return self.resolve_url(saved)

    async def get_document(self, ctx: RequestContext, document_id: UUID) -> Document | None:
        document = await self.repo.get_document(ctx, document_id)
        return self.resolve_url(document) if document is not None else None

    async def list_documents(
        self,
        ctx: RequestContext,
        *,
        category: DocType | None = None,
        query: str | None = None,
    ) -> list[Document]:
        """List the user's documents, newest first, optionally filtered.

        Args:
            ctx: Request context (tenancy)
            category: Only documents in this category
            query: Case-insensitive title substring

        Returns:
            Documents with reminders attached and signed URLs resolved
        """
        documents = await self.repo.list_documents(ctx, category=category)
        if query and query.strip():
            needle = query.strip().lower()
            documents = [d for d in documents if needle in d.metadata.title.lower()]
        return [self.resolve_url(d) for d in documents]

    async def update_document(
        self, ctx: RequestContext, document_id: UUID, patch: DocumentPatch
    ) -> Document | None:
        """Apply user edits to a document's metadata."""
        document = await self.repo.get_document(ctx, document_id)
        if document is None:
            return None

        changes = patch.model_dump(exclude_unset=True)
        # title and category cannot be cleared
        for required in ("title", "category"):
            if changes.get(required, "") is None:
                del changes[required]

        metadata = document.metadata.model_copy(update=changes)
        updated = document.model_copy(
            update={"metadata": metadata, "updated_at": datetime.now(timezone.utc)}
        )
        return await self.save_document(ctx, updated)

    async def store_risk(
        self, ctx: RequestContext, document_id: UUID, analysis: RiskAnalysis
    ) -> Document | None:
        """Save a risk analysis onto the document."""
        document = await self.repo.get_document(ctx, document_id)
        if document is None:
            return None
        metadata = document.metadata.model_copy(update={"risk_analysis": analysis})
        updated = document.model_copy(
            update={"metadata": metadata, "updated_at": datetime.now(timezone.utc)}
        )
        return await self.save_document(ctx, updated)

    async def delete_document(self, ctx: RequestContext, document_id: UUID) -> bool:
        """Delete the row (and its reminders), then reclaim the storage object.

        Storage removal failure does not undo or block the database delete.
        """
        deleted = await self.repo.delete_document(ctx, document_id)
        if deleted is None:
            return False
        if deleted.file_path:
            await self.remove_object(deleted.file_path)
        logger.info(f"Deleted document {document_id}")
        return True

    # Reminders

    async def list_reminders(self, ctx: RequestContext) -> list[Reminder]:
        return await self.repo.list_reminders(ctx)

    async def create_reminder(self, ctx: RequestContext, data: ReminderInput) -> Reminder:
        """Create a manual reminder."""
        reminder = Reminder(
            reminder_id=uuid4(),
            source=ReminderSource.manual,
            **data.model_dump(),
        )
        return await self.repo.save_reminder(ctx, reminder)

    async def update_reminder(
        self, ctx: RequestContext, reminder_id: UUID, data: ReminderInput
    ) -> Reminder | None:
        """Replace a reminder's fields.

        Document-sourced reminders are edited through their parent so the
        document's reminder set is re-saved as one unit.
        """
        existing = await self.repo.get_reminder(ctx, reminder_id)
        if existing is None:
            return None
        updated = existing.model_copy(update=data.model_dump())

        if existing.document_id is None:
            return await self.repo.save_reminder(ctx, updated)

        parent = await self.repo.get_document(ctx, existing.document_id)
        if parent is None:
            return None
        reminders = [updated if r.reminder_id == reminder_id else r for r in parent.reminders]
        await self.repo.save_document(ctx, parent.model_copy(update={"reminders": reminders}))
        return updated

    async def delete_reminder(self, ctx: RequestContext, reminder_id: UUID) -> bool:
        """Delete a reminder; document-sourced ones via their parent's reminder set."""
        existing = await self.repo.get_reminder(ctx, reminder_id)
        if existing is None:
            return False

        if existing.document_id is None:
            return await self.repo.delete_reminder(ctx, reminder_id)

        parent = await self.repo.get_document(ctx, existing.document_id)
        if parent is None:
            return False
        reminders = [r for r in parent.reminders if r.reminder_id != reminder_id]
        await self.repo.save_document(ctx, parent.model_copy(update={"reminders": reminders}))
        return True
