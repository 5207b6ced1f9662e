"""Document intake pipeline.

fingerprint -> normalize -> duplicate gate -> extract -> store -> assemble/persist

Stages run strictly in sequence for one upload. Format problems are rejected
before any network call; a duplicate stops the pipeline before extraction
or storage; extraction failures leave nothing persisted.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Literal

from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.docs.assembler import assemble_document
from backend.app.docs.dedupe import is_duplicate
from backend.app.docs.fingerprint import fingerprint_bytes
from backend.app.docs.gateway import DocumentGateway
from backend.app.docs.normalizer import normalize_file
from backend.app.errors import (
    DuplicateDocumentError,
    ExtractionError,
    FileReadError,
    FileTooLargeError,
    PersistenceError,
    TravaultError,
    UnsupportedFormatError,
)
from backend.app.llm.client import ExtractionClient, ExtractionRequest
from backend.app.models.documents import Document
from backend.app.utils.logging import StructuredPipelineLogger
from backend.app.utils.metrics import PrometheusPipelineMetrics

logger = logging.getLogger(__name__)

# Final-outcome labels for documents_ingested_total
ERROR_OUTCOMES: dict[type[TravaultError], str] = {
    UnsupportedFormatError: "unsupported",
    FileTooLargeError: "too_large",
    FileReadError: "read_error",
    ExtractionError: "extraction_error",
    PersistenceError: "persistence_error",
}


@dataclass(frozen=True)
class IntakeOutcome:
    """Result of one upload: a new document, or a duplicate of an existing one."""

    status: Literal["created", "duplicate"]
    fingerprint: str
    document: Document | None = None


class _StageTimer:
    """Times pipeline stages and reports them to logs and metrics."""

    def __init__(
        self, log: StructuredPipelineLogger, metrics: PrometheusPipelineMetrics
    ) -> None:
        self.log = log
        self.metrics = metrics
        self.fingerprint: str | None = None
        self._start = time.perf_counter()

    def start(self) -> None:
        self._start = time.perf_counter()

    def done(self, stage: str, outcome: str = "success", error: str | None = None) -> None:
        latency_ms = (time.perf_counter() - self._start) * 1000
        self.metrics.record_latency(stage, outcome, latency_ms)
        self.log.log_stage(
            stage, outcome, latency_ms, fingerprint=self.fingerprint, error_reason=error
        )


async def ingest_upload(
    *,
    ctx: RequestContext,
    file_name: str,
    mime_type: str | None,
    content: bytes,
    gateway: DocumentGateway,
    client: ExtractionClient,
    settings: Settings,
    target_language: str | None = None,
    current_date: date | None = None,
) -> IntakeOutcome:
    """Run one upload through the intake pipeline.

    Args:
        ctx: Request context (tenancy)
        file_name: Original file name
        mime_type: Declared media type (may be None or octet-stream)
        content: Raw upload bytes
        gateway: Persistence gateway
        client: Extraction service client
        settings: Application settings
        target_language: Translation target (defaults to settings)
        current_date: Date context for extraction (defaults to today)

    Returns:
        IntakeOutcome with the created document, or a duplicate outcome

    Raises:
        FileTooLargeError, FileReadError, UnsupportedFormatError: Bad input
        ExtractionError: Extraction service failed; nothing was persisted
        PersistenceError: Database write failed; the stored object is removed
    """
    metrics = gateway.metrics
    timer = _StageTimer(StructuredPipelineLogger(ctx.user_id, file_name), metrics)

    try:
        outcome = await _run(
            ctx=ctx,
            file_name=file_name,
            mime_type=mime_type,
            content=content,
            gateway=gateway,
            client=client,
            settings=settings,
            target_language=target_language or settings.target_language,
            current_date=current_date or date.today(),
            timer=timer,
        )
    except TravaultError as e:
        metrics.inc_ingested(ERROR_OUTCOMES.get(type(e), "error"))
        raise

    metrics.inc_ingested(outcome.status)
    return outcome


async def _run(
    *,
    ctx: RequestContext,
    file_name: str,
    mime_type: str | None,
    content: bytes,
    gateway: DocumentGateway,
    client: ExtractionClient,
    settings: Settings,
    target_language: str,
    current_date: date,
    timer: _StageTimer,
) -> IntakeOutcome:
    if not content:
        raise FileReadError(f"Uploaded file {file_name} is empty")
    if len(content) > settings.max_upload_bytes:
        raise FileTooLargeError(len(content), settings.max_upload_bytes)

    # 1. Fingerprint the original bytes
    timer.start()
    fingerprint = fingerprint_bytes(content)
    timer.fingerprint = fingerprint
    timer.done("fingerprint")

    # 2. Normalize (CPU and file parsing, off the event loop)
    timer.start()
    try:
        normalized = await asyncio.to_thread(
            normalize_file, content, file_name, mime_type, settings
        )
    except (UnsupportedFormatError, FileReadError) as e:
        timer.done("normalize", "failure", str(e))
        raise
    timer.done("normalize")

    # 3. Duplicate gate (fast path; the unique constraint is authoritative)
    timer.start()
    if await is_duplicate(gateway.repo, ctx, fingerprint):
        timer.done("dedupe", "duplicate")
        return IntakeOutcome(status="duplicate", fingerprint=fingerprint)
    timer.done("dedupe")

    # 4. Extract
    timer.start()
    request = ExtractionRequest(
        content=normalized.ai_content,
        mime_type=normalized.ai_mime_type,
        is_text=normalized.is_text,
        target_language=target_language,
        current_date=current_date,
    )
    try:
        extraction = await client.extract_metadata(request)
    except ExtractionError as e:
        timer.done("extract", "failure", str(e))
        raise
    timer.done("extract")

    # 5. Store the binary object; failure keeps inline content instead
    timer.start()
    file_path = await gateway.upload_object(
        ctx, normalized.storage_file_name, normalized.storage_bytes
    )
    timer.done("store", "success" if file_path else "skipped")

    # 6. Assemble and persist
    timer.start()
    document = assemble_document(
        user_id=ctx.user_id,
        fingerprint=fingerprint,
        normalized=normalized,
        extraction=extraction,
        file_path=file_path,
    )
    try:
        saved = await gateway.save_document(ctx, document)
    except DuplicateDocumentError:
        # Lost a race with a concurrent upload of the same bytes
        timer.done("persist", "duplicate")
        if file_path:
            await gateway.remove_object(file_path)
        return IntakeOutcome(status="duplicate", fingerprint=fingerprint)
    except PersistenceError as e:
        timer.done("persist", "failure", e.detail)
        if file_path:
            await gateway.remove_object(file_path)
        raise
    timer.done("persist")

    logger.info(
        f"Ingested {file_name} as {saved.metadata.category.value} "
        f"with {len(saved.reminders)} reminder(s)"
    )
    return IntakeOutcome(status="created", fingerprint=fingerprint, document=saved)
