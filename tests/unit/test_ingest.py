"""Tests for the document intake pipeline, run against the in-memory repository."""

from collections.abc import Callable
from datetime import date
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.inmemory import InMemoryDocumentRepository
from backend.app.docs.fingerprint import fingerprint_bytes
from backend.app.docs.gateway import DocumentGateway
from backend.app.docs.ingest import IntakeOutcome, ingest_upload
from backend.app.errors import (
    ExtractionError,
    FileReadError,
    FileTooLargeError,
    PersistenceError,
    StorageError,
    UnsupportedFormatError,
)
from backend.app.llm.client import DeterministicStubClient
from backend.app.models.common import DocType, ReminderSource
from backend.app.storage.object_store import LocalObjectStore

TODAY = date(2025, 1, 15)
TICKET = b"Flight AB123, departs 2025-03-01 14:00, Gate 5"


async def _ingest(
    gateway: DocumentGateway,
    settings: Settings,
    ctx: RequestContext,
    content: bytes = TICKET,
    file_name: str = "ticket.txt",
    mime_type: str | None = "text/plain",
    client: object | None = None,
) -> IntakeOutcome:
    return await ingest_upload(
        ctx=ctx,
        file_name=file_name,
        mime_type=mime_type,
        content=content,
        gateway=gateway,
        client=client or DeterministicStubClient(),
        settings=settings,
        current_date=TODAY,
    )


@pytest.mark.asyncio
async def test_ingest_text_document(
    gateway: DocumentGateway,
    settings: Settings,
    ctx: RequestContext,
    object_store: LocalObjectStore,
) -> None:
    outcome = await _ingest(gateway, settings, ctx)

    assert outcome.status == "created"
    assert outcome.fingerprint == fingerprint_bytes(TICKET)
    doc = outcome.document
    assert doc is not None
    assert doc.user_id == ctx.user_id
    assert doc.content_hash == outcome.fingerprint
    assert doc.metadata.category == DocType.ticket
    assert doc.is_text_based is True
    assert doc.inline_content == TICKET.decode()
    assert doc.file_path is not None and object_store.exists(doc.file_path)
    assert doc.file_url is not None and "signature=" in doc.file_url

    assert len(doc.reminders) == 2
    assert all(r.source == ReminderSource.document for r in doc.reminders)
    assert all(r.document_id == doc.document_id for r in doc.reminders)


@pytest.mark.asyncio
async def test_duplicate_short_circuits_before_extraction(
    gateway: DocumentGateway, settings: Settings, ctx: RequestContext
) -> None:
    """Test a re-upload never reaches the extraction service or storage."""
    first = await _ingest(gateway, settings, ctx)

    client = AsyncMock()
    second = await _ingest(gateway, settings, ctx, client=client)

    assert second.status == "duplicate"
    assert second.fingerprint == first.fingerprint
    assert second.document is None
    client.extract_metadata.assert_not_called()
    assert len(await gateway.list_documents(ctx)) == 1


@pytest.mark.asyncio
async def test_same_bytes_for_another_user_is_not_duplicate(
    gateway: DocumentGateway,
    settings: Settings,
    ctx: RequestContext,
    other_ctx: RequestContext,
) -> None:
    await _ingest(gateway, settings, ctx)

    outcome = await _ingest(gateway, settings, other_ctx)

    assert outcome.status == "created"


@pytest.mark.asyncio
async def test_extraction_error_persists_nothing(
    gateway: DocumentGateway, settings: Settings, ctx: RequestContext
) -> None:
    client = AsyncMock()
    client.extract_metadata.side_effect = ExtractionError("service down")

    with pytest.raises(ExtractionError):
        await _ingest(gateway, settings, ctx, client=client)

    assert await gateway.list_documents(ctx) == []
    assert await gateway.list_reminders(ctx) == []


@pytest.mark.asyncio
async def test_unsupported_format_rejected_before_extraction(
    gateway: DocumentGateway, settings: Settings, ctx: RequestContext
) -> None:
    client = AsyncMock()

    with pytest.raises(UnsupportedFormatError):
        await _ingest(
            gateway, settings, ctx, b"PK\x03\x04", "archive.zip", "application/zip", client
        )

    client.extract_metadata.assert_not_called()


@pytest.mark.asyncio
async def test_empty_file_rejected(
    gateway: DocumentGateway, settings: Settings, ctx: RequestContext
) -> None:
    with pytest.raises(FileReadError):
        await _ingest(gateway, settings, ctx, content=b"")


@pytest.mark.asyncio
async def test_file_over_limit_rejected(
    gateway: DocumentGateway, settings: Settings, ctx: RequestContext
) -> None:
    small = settings.model_copy(update={"max_upload_bytes": 10})

    with pytest.raises(FileTooLargeError):
        await _ingest(gateway, small, ctx)


@pytest.mark.asyncio
async def test_storage_failure_keeps_inline_content(
    memory_repo: InMemoryDocumentRepository,
    settings: Settings,
    ctx: RequestContext,
    png_bytes: Callable[..., bytes],
) -> None:
    """Test an image whose upload fails is saved with a data URL instead."""
    store = MagicMock()
    store.put.side_effect = StorageError("disk full")
    gateway = DocumentGateway(memory_repo, store, settings)

    outcome = await _ingest(
        gateway, settings, ctx, content=png_bytes(), file_name="visa.png", mime_type="image/png"
    )

    doc = outcome.document
    assert doc is not None
    assert doc.file_path is None
    assert doc.file_url is None
    assert doc.inline_content is not None
    assert doc.inline_content.startswith("data:image/png;base64,")
    assert doc.metadata.title == "Scanned document"


class FailingRepository(InMemoryDocumentRepository):
    """Repository whose writes fail, as with a missing table."""

    async def save_document(self, ctx, document):  # type: ignore[no-untyped-def]
        raise PersistenceError("Failed to save document", "no such table: document")


class RacingRepository(InMemoryDocumentRepository):
    """Repository whose duplicate pre-check always misses, like a lost race."""

    async def fingerprint_exists(self, ctx, fingerprint):  # type: ignore[no-untyped-def]
        return False


def _stored_files(settings: Settings) -> list[Path]:
    return [p for p in Path(settings.storage_root).rglob("*") if p.is_file()]


@pytest.mark.asyncio
async def test_persistence_failure_removes_stored_object(
    settings: Settings, ctx: RequestContext, object_store: LocalObjectStore
) -> None:
    store = MagicMock(wraps=object_store)
    gateway = DocumentGateway(FailingRepository(), store, settings)

    with pytest.raises(PersistenceError) as exc_info:
        await _ingest(gateway, settings, ctx)

    assert exc_info.value.detail == "no such table: document"
    store.put.assert_called_once()
    store.remove.assert_called_once()
    assert _stored_files(settings) == []


@pytest.mark.asyncio
async def test_lost_duplicate_race_is_a_duplicate(
    settings: Settings, ctx: RequestContext, object_store: LocalObjectStore
) -> None:
    """Test the unique constraint catches a duplicate the pre-check missed."""
    gateway = DocumentGateway(RacingRepository(), object_store, settings)

    first = await _ingest(gateway, settings, ctx)
    second = await _ingest(gateway, settings, ctx)

    assert first.status == "created"
    assert second.status == "duplicate"
    assert len(_stored_files(settings)) == 1
    assert len(await gateway.list_documents(ctx)) == 1


@pytest.mark.asyncio
async def test_unrenderable_pdf_is_still_ingested(
    gateway: DocumentGateway, settings: Settings, ctx: RequestContext
) -> None:
    outcome = await _ingest(
        gateway,
        settings,
        ctx,
        content=b"%PDF-1.4\n not a parseable body",
        file_name="scan.pdf",
        mime_type="application/pdf",
    )

    assert outcome.status == "created"
    doc = outcome.document
    assert doc is not None
    assert doc.preview_image in (None, "")
    assert doc.metadata.category == DocType.other
