"""Repository protocol interfaces for data access."""

from typing import Protocol
from uuid import UUID

from backend.app.db.context import RequestContext
from backend.app.models.common import DocType
from backend.app.models.documents import Document, Reminder


class DocumentRepository(Protocol):
    """Repository for documents and their reminders.

    Every method is scoped to ``ctx.user_id``; rows owned by other users are
    invisible (reads return None, deletes are no-ops).
    """

    async def fingerprint_exists(self, ctx: RequestContext, fingerprint: str) -> bool:
        """Check whether the user already has a document with this fingerprint."""
        ...

    async def save_document(self, ctx: RequestContext, document: Document) -> Document:
        """Upsert a document and replace its reminder set as one unit.

        Raises:
            DuplicateDocumentError: If (user, fingerprint) is already taken
            PersistenceError: On any other database failure
        """
        ...

    async def get_document(self, ctx: RequestContext, document_id: UUID) -> Document | None:
        """Get one document with its reminders attached."""
        ...

    async def list_documents(
        self, ctx: RequestContext, *, category: DocType | None = None
    ) -> list[Document]:
        """List the user's documents, newest first, reminders attached."""
        ...

    async def delete_document(self, ctx: RequestContext, document_id: UUID) -> Document | None:
        """Delete a document and its reminders.

        Returns:
            The deleted document (so the caller can reclaim its storage
            object), or None if it did not exist
        """
        ...

    async def list_reminders(self, ctx: RequestContext) -> list[Reminder]:
        """List manual and document reminders, sorted by date then time."""
        ...

    async def get_reminder(self, ctx: RequestContext, reminder_id: UUID) -> Reminder | None:
        """Get one reminder."""
        ...

    async def save_reminder(self, ctx: RequestContext, reminder: Reminder) -> Reminder:
        """Insert or replace a single reminder."""
        ...

    async def delete_reminder(self, ctx: RequestContext, reminder_id: UUID) -> bool:
        """Delete a single reminder. Returns False if it did not exist."""
        ...


def reminder_sort_key(reminder: Reminder) -> tuple[str, str]:
    """Order by date, then time; untimed reminders lead their day."""
    return (reminder.date.isoformat(), reminder.time or "")
