"""Document record assembler - merge pipeline outputs into one entity."""

import base64
from datetime import datetime, timezone
from uuid import UUID, uuid4

from backend.app.docs.normalizer import NormalizedFile
from backend.app.models.common import ReminderSource
from backend.app.models.documents import Document, ExtractionResult, Reminder, ReminderDraft


def reminders_from_drafts(document_id: UUID, drafts: list[ReminderDraft]) -> list[Reminder]:
    """Give each draft an id and bind it to its parent document."""
    return [
        Reminder(
            reminder_id=uuid4(),
            title=draft.title,
            description=draft.description,
            date=draft.date,
            time=draft.time,
            priority=draft.priority,
            source=ReminderSource.document,
            document_id=document_id,
        )
        for draft in drafts
    ]


def inline_content_for(normalized: NormalizedFile, file_path: str | None) -> str | None:
    """Content kept on the row itself.

    Text documents keep their text. Binary documents without a storage
    object fall back to a data URL of the stored bytes.
    """
    if normalized.is_text:
        return normalized.text
    if file_path is None:
        encoded = base64.b64encode(normalized.storage_bytes).decode("ascii")
        return f"data:{normalized.storage_mime_type};base64,{encoded}"
    return None


def assemble_document(
    *,
    user_id: UUID,
    fingerprint: str,
    normalized: NormalizedFile,
    extraction: ExtractionResult,
    file_path: str | None,
    document_id: UUID | None = None,
    now: datetime | None = None,
) -> Document:
    """Build a Document and its document-sourced reminders.

    Args:
        user_id: Owner
        fingerprint: Digest of the original upload bytes
        normalized: Normalizer output
        extraction: Validated extraction result
        file_path: Object store path, or None if the upload was not stored
        document_id: Id to use (generated when omitted)
        now: Creation timestamp (defaults to current UTC time)

    Returns:
        Document ready to persist, reminders attached
    """
    document_id = document_id or uuid4()
    now = now or datetime.now(timezone.utc)

    return Document(
        document_id=document_id,
        user_id=user_id,
        file_name=normalized.storage_file_name,
        mime_type=normalized.storage_mime_type,
        is_text_based=normalized.is_text,
        inline_content=inline_content_for(normalized, file_path),
        preview_image=normalized.preview or None,
        file_path=file_path,
        content_hash=fingerprint,
        metadata=extraction.to_metadata(),
        reminders=reminders_from_drafts(document_id, extraction.reminders),
        created_at=now,
        updated_at=now,
    )
