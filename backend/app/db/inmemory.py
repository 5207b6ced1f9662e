"""In-memory implementation of the document repository."""

import uuid

from backend.app.db.context import RequestContext
from backend.app.db.repositories import reminder_sort_key
from backend.app.errors import DuplicateDocumentError
from backend.app.models.common import DocType
from backend.app.models.documents import Document, Reminder


class InMemoryDocumentRepository:
    """In-memory implementation of DocumentRepository."""

    def __init__(self) -> None:
        self._documents: dict[uuid.UUID, Document] = {}
        self._reminders: dict[uuid.UUID, tuple[uuid.UUID, Reminder]] = {}

    async def fingerprint_exists(self, ctx: RequestContext, fingerprint: str) -> bool:
        """Check whether the user already has a document with this fingerprint."""
        return any(
            doc.user_id == ctx.user_id and doc.content_hash == fingerprint
            for doc in self._documents.values()
        )

    async def save_document(self, ctx: RequestContext, document: Document) -> Document:
        """Upsert a document and replace its reminder set."""
        existing = self._documents.get(document.document_id)

        # Enforce tenancy
        if existing is not None and existing.user_id != ctx.user_id:
            raise KeyError(document.document_id)

        # Same constraint the SQL schema enforces on (user_id, content_hash)
        for other in self._documents.values():
            if (
                other.document_id != document.document_id
                and other.user_id == ctx.user_id
                and other.content_hash == document.content_hash
            ):
                raise DuplicateDocumentError(document.content_hash)

        stored = document.model_copy(update={"user_id": ctx.user_id, "reminders": []})
        self._documents[document.document_id] = stored

        for reminder_id, (_, reminder) in list(self._reminders.items()):
            if reminder.document_id == document.document_id:
                del self._reminders[reminder_id]
        for reminder in document.reminders:
            self._reminders[reminder.reminder_id] = (ctx.user_id, reminder)

        result = await self.get_document(ctx, document.document_id)
        assert result is not None
        return result

    async def get_document(self, ctx: RequestContext, document_id: uuid.UUID) -> Document | None:
        """Get one document with its reminders attached."""
        doc = self._documents.get(document_id)
        if doc is None or doc.user_id != ctx.user_id:
            return None
        reminders = sorted(
            (r for _, r in self._reminders.values() if r.document_id == document_id),
            key=reminder_sort_key,
        )
        return doc.model_copy(update={"reminders": reminders})

    async def list_documents(
        self, ctx: RequestContext, *, category: DocType | None = None
    ) -> list[Document]:
        """List the user's documents, newest first."""
        docs = [
            doc
            for doc in self._documents.values()
            if doc.user_id == ctx.user_id
            and (category is None or doc.metadata.category == category)
        ]
        docs.sort(key=lambda d: d.created_at, reverse=True)
        result = []
        for doc in docs:
            attached = await self.get_document(ctx, doc.document_id)
            assert attached is not None
            result.append(attached)
        return result

    async def delete_document(
        self, ctx: RequestContext, document_id: uuid.UUID
    ) -> Document | None:
        """Delete a document and its reminders."""
        doc = await self.get_document(ctx, document_id)
        if doc is None:
            return None
        del self._documents[document_id]
        for reminder_id, (_, reminder) in list(self._reminders.items()):
            if reminder.document_id == document_id:
                del self._reminders[reminder_id]
        return doc

    async def list_reminders(self, ctx: RequestContext) -> list[Reminder]:
        """List manual and document reminders, sorted by date then time."""
        reminders = [r for owner, r in self._reminders.values() if owner == ctx.user_id]
        return sorted(reminders, key=reminder_sort_key)

    async def get_reminder(self, ctx: RequestContext, reminder_id: uuid.UUID) -> Reminder | None:
        """Get one reminder."""
        entry = self._reminders.get(reminder_id)
        if entry is None or entry[0] != ctx.user_id:
            return None
        return entry[1]

    async def save_reminder(self, ctx: RequestContext, reminder: Reminder) -> Reminder:
        """Insert or replace a single reminder."""
        entry = self._reminders.get(reminder.reminder_id)
        if entry is not None and entry[0] != ctx.user_id:
            raise KeyError(reminder.reminder_id)
        self._reminders[reminder.reminder_id] = (ctx.user_id, reminder)
        return reminder

    async def delete_reminder(self, ctx: RequestContext, reminder_id: uuid.UUID) -> bool:
        """Delete a single reminder."""
        if await self.get_reminder(ctx, reminder_id) is None:
            return False
        del self._reminders[reminder_id]
        return True
